"""Shared fixtures for transfer-planner tests."""

import pytest

from pressure_optimization.branch_bound.state import State
from pressure_optimization.scenarios import build_state


@pytest.fixture
def tiny_state():
    """
    2 targets (10, 0, 100), donors D0 (10, 100), D1 (10, 80).

    Depth-2 search tree (hand-enumerated): 4 root moves, 12 tests in total,
    no duplicate states, no bound pruning (no target reaches its cap).
    """
    return State(
        targets=[(10, 0, 100), (10, 0, 100)],
        donors=[(10, 100), (10, 80)],
    )


@pytest.fixture
def reference_state():
    """Five-target reference instance (6 donors)."""
    return build_state("five_targets")
