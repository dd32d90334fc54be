"""
Pressure Optimization Data Models.

This module defines the data structures shared by state and solver:
- Tube: Gas cylinder (target or donor)
- ObjectiveValue: Lexicographic objective 4-tuple
- DonationEvent: Record of one applied donor -> target transfer
- SolutionStatus: Classification of a search result
- ChunkResult: Per-chunk search statistics
- SearchResult: Best state plus reporting side channel

NOTE: State is NOT defined here. It is defined in branch_bound/state.py.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from pressure_optimization.branch_bound.state import State


@dataclass
class Tube:
    """
    Gas cylinder.

    Attributes:
        volume: Cylinder volume (> 0)
        pressure: Current pressure (>= 0)
        max_pressure: Rated pressure for targets; donors use their initial pressure
        num_of_connections: Number of applied transfers referencing this cylinder

    Notes:
        - Mutable: State changes pressure and num_of_connections in place
        - Field order defines the ordering used by State comparisons
    """
    volume: float
    pressure: float
    max_pressure: float = 0.0
    num_of_connections: int = 0

    def __post_init__(self):
        if not self.volume > 0.0:
            raise ValueError(f"volume ({self.volume}) must be > 0.0")
        if self.pressure < 0.0:
            raise ValueError(f"pressure ({self.pressure}) must be >= 0.0")
        if self.max_pressure < 0.0:
            raise ValueError(f"max_pressure ({self.max_pressure}) must be >= 0.0")

    @classmethod
    def donor(cls, volume: float, pressure: float) -> Tube:
        """Create a donor; its own pressure is its ceiling."""
        return cls(volume, pressure, pressure)

    def key(self) -> tuple[float, float, float, int]:
        return (self.volume, self.pressure, self.max_pressure, self.num_of_connections)

    def copy(self) -> Tube:
        return Tube(self.volume, self.pressure, self.max_pressure, self.num_of_connections)

    def is_approximately_equal_to(
        self,
        other: Tube,
        volume_tolerance: float = 0.1,
        pressure_tolerance: float = 1.0
    ) -> bool:
        """
        Check physical equivalence (used for donor symmetry breaking).

        Args:
            other: Cylinder to compare with
            volume_tolerance: Strict bound on |volume difference|
            pressure_tolerance: Strict bound on |pressure difference|

        Returns:
            True if both differences are below their tolerances
        """
        return (abs(self.volume - other.volume) < volume_tolerance and
                abs(self.pressure - other.pressure) < pressure_tolerance)

    def describe(self, number: int) -> str:
        return (f"{number}. (volume, pressure, max pressure): "
                f"{self.volume:g}, {self.pressure:g}, {self.max_pressure:g}")


class ObjectiveValue(NamedTuple):
    """
    Lexicographic objective (compared component by component, smaller is better).

    Attributes:
        feasibility: 0.0 if every deficit <= upper tolerance, else 1.0
        worst_deficit: 0.0 if worst deficit <= lower tolerance, else the worst deficit
        num_transfers: Number of applied transfers
        total_deficit: Sum of all target deficits
    """
    feasibility: float
    worst_deficit: float
    num_transfers: float
    total_deficit: float


@dataclass(frozen=True)
class DonationEvent:
    """
    Immutable record of one applied donor -> target transfer.

    Attributes:
        donor_index: Index into State.donors
        target_index: Index into State.targets
        donor_pressure_before: Donor pressure before the transfer
        donor_pressure_after: Donor pressure after the transfer
        target_pressure_before: Target pressure before the transfer
        target_pressure_after: Target pressure after the transfer
        lexicographic_objective_value: Objective 4-tuple right after the transfer
        objective_value: Scalarized objective right after the transfer
    """
    donor_index: int
    target_index: int
    donor_pressure_before: float
    donor_pressure_after: float
    target_pressure_before: float
    target_pressure_after: float
    lexicographic_objective_value: ObjectiveValue
    objective_value: float

    def describe(self, number: int) -> str:
        return (f"{number}. D{self.donor_index + 1} to T{self.target_index + 1} "
                f"(target pressure: {self.target_pressure_before:g} -> {self.target_pressure_after:g}, "
                f"donor pressure: {self.donor_pressure_before:g} -> {self.donor_pressure_after:g})")


class SolutionStatus(Enum):
    """
    Status of a search result.

    Values:
        FULL: Every target within upper tolerance of its max pressure (v1 == 0)
        WITHIN_TOLERANCE: Worst deficit within lower tolerance (v2 == 0)
        PARTIAL: At least one target deficit above lower tolerance
        NO_TRANSFER: No admissible transfer was found (initial state returned)
    """
    FULL = "FULL"
    WITHIN_TOLERANCE = "WITHIN_TOLERANCE"
    PARTIAL = "PARTIAL"
    NO_TRANSFER = "NO_TRANSFER"

    @classmethod
    def from_objective(cls, objective: ObjectiveValue | None) -> SolutionStatus:
        if objective is None:
            return cls.NO_TRANSFER
        if objective.feasibility == 0.0:
            return cls.FULL
        if objective.worst_deficit == 0.0:
            return cls.WITHIN_TOLERANCE
        return cls.PARTIAL


@dataclass
class ChunkResult:
    """
    Statistics of one independently searched chunk.

    Attributes:
        chunk_index: Position of the chunk in the partition
        target_range: Half-open top-level target index range [begin, end)
        num_tests: Number of transfers tested in this chunk
        objective_value: Scalar objective of the chunk's best state
    """
    chunk_index: int
    target_range: tuple[int, int]
    num_tests: int
    objective_value: float


@dataclass
class SearchResult:
    """
    Search outcome plus diagnostics.

    Attributes:
        best_state: Best state found (by scalar objective)
        num_tests: Total number of tested transfers (sum over chunks)
        elapsed_s: Wall-clock time of the search in seconds
        status: Classification of best_state
        chunks: Per-chunk statistics in chunk order

    Notes:
        - Diagnostics (num_tests, elapsed_s, chunks) are not part of the
          correctness contract; only best_state is
    """
    best_state: State
    num_tests: int
    elapsed_s: float
    status: SolutionStatus
    chunks: list[ChunkResult] = field(default_factory=list)
