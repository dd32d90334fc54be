"""
Pressure Optimization: pressure-equalization transfer planner.

Finds a short sequence of donor -> target cylinder transfers that fills every
target as close as possible to its max pressure without exceeding it.

Main API:
    solve(initial_state, depth_left, num_chunks=1, max_tests=1e10) -> State
    solve_with_report(...) -> SearchResult
"""

from .config import ObjectiveWeights, TransferConfig, SearchConfig
from .models import (
    Tube,
    ObjectiveValue,
    DonationEvent,
    SolutionStatus,
    ChunkResult,
    SearchResult,
)
from .branch_bound import State, search, solve, solve_with_report

__version__ = "0.1.0"

__all__ = [
    # Main API
    "solve",
    "solve_with_report",
    "search",
    "State",
    # Config
    "ObjectiveWeights",
    "TransferConfig",
    "SearchConfig",
    # Models
    "Tube",
    "ObjectiveValue",
    "DonationEvent",
    "SolutionStatus",
    "ChunkResult",
    "SearchResult",
]
