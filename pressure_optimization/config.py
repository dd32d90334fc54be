"""
Pressure Optimization Configuration Models.

This module defines the configuration structures for the transfer planner:
- ObjectiveWeights: Scalarization weights for the lexicographic objective
- TransferConfig: Physical transition constants of a State (fixed per instance)
- SearchConfig: Branch-and-bound search parameters

All pressures share one (caller-chosen) unit, typically bar.
All volumes share one (caller-chosen) unit, typically liters.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Optional, NamedTuple


class ObjectiveWeights(NamedTuple):
    """
    Weights used to collapse the lexicographic objective into one scalar.

    Attributes:
        feasibility: Weight for v1 (0/1 overpressure-free flag)
        worst_deficit: Weight for v2 (worst target deficit above lower tolerance)
        num_transfers: Weight for v3 (number of applied transfers)
        total_deficit: Weight for v4 (sum of target deficits)

    Notes:
        - Earlier components dominate as long as v2, v3, v4 stay in their
          expected magnitude bands (v2 < 1e4, v3 < 1e2, v4 < 1e2)
    """
    feasibility: float = 1e8
    worst_deficit: float = 1e4
    num_transfers: float = 1e2
    total_deficit: float = 1.0


@dataclass(frozen=True)
class TransferConfig:
    """
    Physical transition constants for a State.

    Organized in 3 groups:
    1. Transition policy: Early stopping, minimum improvement
    2. Tolerances: Pressure tolerances, donor equivalence tolerances
    3. Fan-out: Connection caps per cylinder

    Notes:
        - Frozen: constants are fixed once a State is built
        - Validated in __post_init__ (ValueError on invalid values)
    """

    # ========== 1. Transition policy ==========
    allow_early_stopping: bool = False
    """If True, a transfer may be cut short once the target would exceed its cap.
       The target is clipped to max_pressure + upper_pressure_tolerance and the
       donor pressure is back-solved from conservation of volume * pressure."""

    minimum_improvement_fraction: float = 0.2
    """Minimum fraction of the current target deficit a transfer must close."""

    # ========== 2. Tolerances ==========
    upper_pressure_tolerance: float = 1e-6
    """Allowed overshoot above a target's max pressure."""

    lower_pressure_tolerance: float = 20.0
    """Deficit below which a target counts as acceptably full (objective v2)."""

    volume_equivalence_tolerance: float = 0.1
    """Two donors are equivalent if their volumes differ by less than this."""

    pressure_equivalence_tolerance: float = 1.0
    """Two donors are equivalent if their pressures differ by less than this."""

    # ========== 3. Fan-out ==========
    max_num_of_donor_connections: int = 2
    """Maximum number of transfers a donor may take part in."""

    max_num_of_target_connections: int = 3
    """Maximum number of transfers a target may take part in."""

    objective_weights: ObjectiveWeights = field(default_factory=ObjectiveWeights)
    """Scalarization weights (v1, v2, v3, v4) -> 1e8*v1 + 1e4*v2 + 1e2*v3 + v4."""

    def __post_init__(self):
        if not 0.0 <= self.minimum_improvement_fraction <= 1.0:
            raise ValueError(
                f"minimum_improvement_fraction ({self.minimum_improvement_fraction}) "
                f"must be in [0, 1]"
            )
        for name in ("upper_pressure_tolerance", "lower_pressure_tolerance",
                     "volume_equivalence_tolerance", "pressure_equivalence_tolerance"):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} ({getattr(self, name)}) must be >= 0.0")
        if self.max_num_of_donor_connections < 1:
            raise ValueError(
                f"max_num_of_donor_connections ({self.max_num_of_donor_connections}) must be >= 1"
            )
        if self.max_num_of_target_connections < 1:
            raise ValueError(
                f"max_num_of_target_connections ({self.max_num_of_target_connections}) must be >= 1"
            )
        if len(self.objective_weights) != 4:
            raise ValueError(
                f"objective_weights must have 4 entries, got {len(self.objective_weights)}"
            )
        # Accept plain tuples from callers
        object.__setattr__(self, "objective_weights", ObjectiveWeights(*self.objective_weights))


@dataclass
class SearchConfig:
    """
    Branch-and-bound search parameters.

    Attributes:
        depth_left: Maximum number of transfers on any explored path
        num_chunks: Number of top-level target sub-ranges searched independently
        max_tests: Total test budget (divided evenly across chunks)
        executor: How chunks run ('process', 'thread' or 'inline')
        max_workers: Worker limit for the pool (None = executor default)
        deduplicate_states: Skip child states already visited in the same chunk
        enable_performance_logging: Record and log hierarchical timings

    Notes:
        - num_chunks == 1 always runs inline (no pool)
        - max_workers == 1 also runs inline
    """
    depth_left: int
    num_chunks: int = 1
    max_tests: int = 10**10
    executor: Literal["process", "thread", "inline"] = "process"
    max_workers: Optional[int] = None
    deduplicate_states: bool = False
    """Visited-set memoization keyed by the exact cylinder vectors. Default off."""
    enable_performance_logging: bool = False

    def __post_init__(self):
        if self.depth_left < 0:
            raise ValueError(f"depth_left ({self.depth_left}) must be >= 0")
        if self.num_chunks < 1:
            raise ValueError(f"num_chunks ({self.num_chunks}) must be >= 1")
        if self.max_tests < 0:
            raise ValueError(f"max_tests ({self.max_tests}) must be >= 0")
        if self.executor not in ("process", "thread", "inline"):
            raise ValueError(
                f"executor must be 'process', 'thread' or 'inline', got {self.executor!r}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers ({self.max_workers}) must be >= 1")
        self.max_tests = int(self.max_tests)

    @property
    def tests_per_chunk(self) -> int:
        """Static per-chunk share of the test budget."""
        return self.max_tests // self.num_chunks

    @property
    def runs_inline(self) -> bool:
        """True if chunks are searched sequentially in the calling thread."""
        return (self.executor == "inline" or self.num_chunks == 1
                or self.max_workers == 1)
