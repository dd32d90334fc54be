"""
Reference problem instances.

Each scenario lists targets as (volume, pressure, max_pressure), donors as
(volume, pressure) and the search depth it is usually solved with.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from pressure_optimization.branch_bound.state import State
from pressure_optimization.config import TransferConfig


@dataclass(frozen=True)
class Scenario:
    name: str
    targets: tuple[tuple[float, float, float], ...]
    donors: tuple[tuple[float, float], ...]
    default_depth: int


SCENARIOS: dict[str, Scenario] = {
    scenario.name: scenario for scenario in (
        Scenario(
            name="five_targets",
            targets=((12, 100, 200), (12, 80, 200), (8, 70, 300), (8, 100, 300), (24, 80, 232)),
            donors=((12, 232),) * 4 + ((10, 300),) * 2,
            default_depth=8,
        ),
        Scenario(
            name="six_targets",
            targets=((12, 100, 200), (12, 80, 200), (8, 70, 300), (8, 100, 300),
                     (12, 80, 232), (12, 70, 232)),
            donors=((12, 232),) * 4 + ((10, 300),) * 2,
            default_depth=7,
        ),
    )
}


def build_state(name: str, config: Optional[TransferConfig] = None) -> State:
    """
    Build the initial State of a named scenario.

    Raises:
        KeyError: If the scenario name is unknown
    """
    try:
        scenario = SCENARIOS[name]
    except KeyError:
        raise KeyError(f"Unknown scenario {name!r}, expected one of {sorted(SCENARIOS)}") from None
    return State(scenario.targets, scenario.donors, config)
