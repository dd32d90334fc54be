"""
Branch-and-Bound Module.

Depth-bounded transfer search with symmetry-breaking pruning.

Public exports:
- State: Core state representation (transition model)
- solve / solve_with_report / search: Search entry points
- admissible_moves / partition_targets: Expansion logic
"""

from pressure_optimization.branch_bound.state import State, equalized_pressure
from pressure_optimization.branch_bound.expansion import admissible_moves, partition_targets
from pressure_optimization.branch_bound.solver import search, solve, solve_with_report

__all__ = [
    'State',
    'equalized_pressure',
    'admissible_moves',
    'partition_targets',
    'search',
    'solve',
    'solve_with_report',
]
