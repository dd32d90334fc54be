"""
Search State for Branch-and-Bound (transition model).

This module defines State - the core data structure of the transfer search.

IMPORTANT: State is defined ONLY here (Single Source of Truth).
           DO NOT import or re-define in models.py.

Key Concepts:
- Targets and donors are Tube vectors, mutated in place by apply()
- Every applied transfer is pushed as a DonationEvent (undo stack)
- unapply_last_event() is the exact inverse of the last apply()
- Comparisons (==, <, hash) look at cylinder vectors only, never at events
"""

from __future__ import annotations
import math
from typing import Iterable, Optional, Sequence, Union

from pressure_optimization.config import TransferConfig
from pressure_optimization.models import Tube, DonationEvent, ObjectiveValue

TubeSpec = Union[Tube, Sequence[float]]


def equalized_pressure(donor: Tube, target: Tube) -> float:
    """
    Pressure after full equalization of donor and target (caps ignored).

    Volume-weighted average (isothermal, volume-linear approximation):
        (V_t * p_t + V_d * p_d) / (V_t + V_d)
    """
    return ((target.volume * target.pressure + donor.volume * donor.pressure) /
            (target.volume + donor.volume))


def _build_equivalent_lower_donors(
    donors: Sequence[Tube],
    config: TransferConfig
) -> tuple[tuple[int, ...], ...]:
    """
    For each donor, the lower-indexed donors that are physically equivalent.

    Returns:
        Tuple indexed by donor; entry i lists j < i with donor j ~ donor i

    Notes:
        - Evaluated once against construction values (pressures change during search)
        - Equivalence: |dV| < volume tolerance AND |dp| < pressure tolerance
    """
    return tuple(
        tuple(
            j for j in range(i)
            if donors[i].is_approximately_equal_to(
                donors[j],
                volume_tolerance=config.volume_equivalence_tolerance,
                pressure_tolerance=config.pressure_equivalence_tolerance,
            )
        )
        for i in range(len(donors))
    )


def _as_target(spec: TubeSpec) -> Tube:
    if isinstance(spec, Tube):
        tube = spec.copy()
    else:
        volume, pressure, max_pressure = spec
        tube = Tube(float(volume), float(pressure), float(max_pressure))
    if tube.num_of_connections != 0:
        raise ValueError(f"New cylinders must have 0 connections, got {tube.num_of_connections}")
    return tube


def _as_donor(spec: TubeSpec) -> Tube:
    if isinstance(spec, Tube):
        tube = spec.copy()
    else:
        volume, pressure = spec
        tube = Tube.donor(float(volume), float(pressure))
    if tube.num_of_connections != 0:
        raise ValueError(f"New cylinders must have 0 connections, got {tube.num_of_connections}")
    return tube


class State:
    """
    Branch-and-bound search state.

    Holds the target and donor cylinders plus the history of applied
    transfers. Mutated only through apply()/unapply_last_event() pairs.

    Attributes:
        config: TransferConfig with the (frozen) transition constants

    Invariants (validated by validate_invariants()):
        - I1: each cylinder's num_of_connections == number of events referencing it
        - I2: unapplying all events in reverse restores the construction pressures
        - I3: every event's target/donor indices are in range

    Example:
        >>> state = State([(12, 100, 200)], [(12, 232)])
        >>> state.is_admissible(0, 0)
        True
        >>> state.apply(0, 0)
        >>> state.targets[0].pressure
        166.0
        >>> state.unapply_last_event()
    """

    def __init__(
        self,
        targets: Iterable[TubeSpec] = (),
        donors: Iterable[TubeSpec] = (),
        config: Optional[TransferConfig] = None
    ):
        """
        Create State from initial cylinder data.

        Args:
            targets: Tubes or (volume, pressure, max_pressure) tuples
            donors: Tubes or (volume, pressure) tuples (max_pressure = pressure)
            config: Transition constants (default TransferConfig())

        Raises:
            ValueError: Invalid cylinder data or cylinders with connections
        """
        self.config = config if config is not None else TransferConfig()
        self._targets: list[Tube] = [_as_target(t) for t in targets]
        self._donors: list[Tube] = [_as_donor(d) for d in donors]
        self._events: list[DonationEvent] = []
        self._equivalent_lower_donors = _build_equivalent_lower_donors(self._donors, self.config)

    # ========== Construction ==========

    def add_target(self, volume: float, pressure: float, max_pressure: float) -> None:
        """Append a target cylinder (only before any transfer is applied)."""
        self._require_no_events("add_target")
        self._targets.append(_as_target((volume, pressure, max_pressure)))

    def add_donor(self, volume: float, pressure: float) -> None:
        """Append a donor cylinder (only before any transfer is applied)."""
        self._require_no_events("add_donor")
        self._donors.append(_as_donor((volume, pressure)))
        self._equivalent_lower_donors = _build_equivalent_lower_donors(self._donors, self.config)

    def _require_no_events(self, operation: str) -> None:
        if self._events:
            raise ValueError(
                f"{operation}() requires an empty event history, "
                f"{len(self._events)} event(s) applied"
            )

    def copy(self) -> State:
        """
        Create an independent copy of this state.

        Returns:
            New State with copied cylinder and event vectors

        Notes:
            - Tubes are copied (mutations isolated)
            - DonationEvents are immutable and shared
            - Config and donor-equivalence table are immutable and shared
        """
        clone = State.__new__(State)
        clone.config = self.config
        clone._targets = [t.copy() for t in self._targets]
        clone._donors = [d.copy() for d in self._donors]
        clone._events = self._events.copy()
        clone._equivalent_lower_donors = self._equivalent_lower_donors
        return clone

    # ========== Accessors ==========

    @property
    def targets(self) -> tuple[Tube, ...]:
        return tuple(self._targets)

    @property
    def donors(self) -> tuple[Tube, ...]:
        return tuple(self._donors)

    @property
    def events(self) -> tuple[DonationEvent, ...]:
        return tuple(self._events)

    @property
    def last_event(self) -> Optional[DonationEvent]:
        return self._events[-1] if self._events else None

    def num_targets(self) -> int:
        return len(self._targets)

    def num_donors(self) -> int:
        return len(self._donors)

    def num_events(self) -> int:
        return len(self._events)

    def _check_indices(self, donor_index: int, target_index: int) -> None:
        if not 0 <= donor_index < len(self._donors):
            raise IndexError(f"donor_index {donor_index} out of range [0, {len(self._donors)})")
        if not 0 <= target_index < len(self._targets):
            raise IndexError(f"target_index {target_index} out of range [0, {len(self._targets)})")

    # ========== Transitions ==========

    def is_admissible(self, donor_index: int, target_index: int) -> bool:
        """
        Check whether transfer donor -> target may be applied next.

        Args:
            donor_index: Index into donors
            target_index: Index into targets

        Returns:
            True if all admissibility rules hold

        Raises:
            IndexError: If an index is out of range

        Rules (all must hold):
            1. Ordering: after an event with a different donor, the target index
               must not decrease ([D1->T2, D2->T1] == [D2->T1, D1->T2])
            2. Donor equivalence: an unused donor is rejected while an
               equivalent lower-indexed donor is also unused
            3. Target below max_num_of_target_connections
            4. Donor below max_num_of_donor_connections
            5. No overpressure (early stopping: target not already at cap)
            6. Transfer closes at least minimum_improvement_fraction of the deficit
        """
        self._check_indices(donor_index, target_index)
        config = self.config

        # 1. Enforce an ordering of independent transfers
        if self._events:
            previous = self._events[-1]
            if donor_index != previous.donor_index and target_index < previous.target_index:
                return False

        donors = self._donors
        donor = donors[donor_index]
        target = self._targets[target_index]

        # 2. Try equivalent unused donors in index order only
        if donor.num_of_connections == 0 and donor_index != 0:
            for j in self._equivalent_lower_donors[donor_index]:
                if donors[j].num_of_connections == 0:
                    return False

        # 3./4. Fan-out caps
        if target.num_of_connections >= config.max_num_of_target_connections:
            return False
        if donor.num_of_connections >= config.max_num_of_donor_connections:
            return False

        pressure_after = equalized_pressure(donor, target)
        cap = target.max_pressure + config.upper_pressure_tolerance

        # 5. Do not overpressurize target
        if config.allow_early_stopping:
            if target.pressure >= cap:
                return False
        elif pressure_after > cap:
            return False

        # 6. Require sufficient improvement
        deficit = max(target.max_pressure - target.pressure, 0.0)
        if pressure_after <= target.pressure + config.minimum_improvement_fraction * deficit:
            return False

        return True

    def apply(self, donor_index: int, target_index: int) -> None:
        """
        Apply transfer donor -> target.

        Args:
            donor_index: Index into donors
            target_index: Index into targets

        Raises:
            IndexError: If an index is out of range

        Notes:
            - Default: both cylinders end at the equalized pressure
            - Early stopping: if the equalized pressure exceeds the cap, the target
              is clipped to max_pressure + upper_pressure_tolerance and the donor
              pressure follows from conservation of volume * pressure
            - Admissibility is NOT checked here (caller's responsibility)
        """
        self._check_indices(donor_index, target_index)
        config = self.config
        donor = self._donors[donor_index]
        target = self._targets[target_index]
        donor_pressure_before = donor.pressure
        target_pressure_before = target.pressure

        pressure_after = equalized_pressure(donor, target)
        donor_pressure_after = pressure_after
        target_pressure_after = pressure_after
        cap = target.max_pressure + config.upper_pressure_tolerance
        if config.allow_early_stopping and pressure_after > cap:
            target_pressure_after = cap
            donor_pressure_after = (
                (pressure_after * (target.volume + donor.volume) - target.volume * cap) /
                donor.volume
            )

        donor.pressure = donor_pressure_after
        donor.num_of_connections += 1
        target.pressure = target_pressure_after
        target.num_of_connections += 1

        objective = self._lexicographic_objective(len(self._events) + 1)
        self._events.append(DonationEvent(
            donor_index=donor_index,
            target_index=target_index,
            donor_pressure_before=donor_pressure_before,
            donor_pressure_after=donor_pressure_after,
            target_pressure_before=target_pressure_before,
            target_pressure_after=target_pressure_after,
            lexicographic_objective_value=objective,
            objective_value=self._scalarize(objective),
        ))

    def unapply_last_event(self) -> None:
        """
        Undo the last applied transfer.

        Raises:
            IndexError: If the event history is empty
            RuntimeError: If a connection counter would become negative
        """
        if not self._events:
            raise IndexError("unapply_last_event() called with empty event history")
        event = self._events[-1]
        donor = self._donors[event.donor_index]
        target = self._targets[event.target_index]
        # State stays untouched if the pairing is broken
        if donor.num_of_connections == 0 or target.num_of_connections == 0:
            raise RuntimeError(
                f"Broken apply/unapply pairing: event D{event.donor_index} -> "
                f"T{event.target_index} references a cylinder without connections"
            )
        self._events.pop()
        donor.pressure = event.donor_pressure_before
        donor.num_of_connections -= 1
        target.pressure = event.target_pressure_before
        target.num_of_connections -= 1

    # ========== Objective ==========

    def _lexicographic_objective(self, num_transfers: int) -> ObjectiveValue:
        upper = self.config.upper_pressure_tolerance
        worst = 0.0
        total = 0.0
        all_within_tolerance = True
        for t in self._targets:
            diff = t.max_pressure - t.pressure
            if diff > upper:
                all_within_tolerance = False
            if diff > worst:
                worst = diff
            total += diff
        return ObjectiveValue(
            feasibility=0.0 if all_within_tolerance else 1.0,
            worst_deficit=0.0 if worst <= self.config.lower_pressure_tolerance else worst,
            num_transfers=float(num_transfers),
            total_deficit=total,
        )

    def _scalarize(self, objective: ObjectiveValue) -> float:
        w = self.config.objective_weights
        return (w.feasibility * objective.feasibility +
                w.worst_deficit * objective.worst_deficit +
                w.num_transfers * objective.num_transfers +
                w.total_deficit * objective.total_deficit)

    def lexicographic_objective(self) -> ObjectiveValue:
        """
        Objective 4-tuple for the current cylinder values.

        Returns:
            ObjectiveValue(feasibility, worst_deficit, num_transfers, total_deficit)

        Notes:
            - Equals last_event.lexicographic_objective_value right after apply()
        """
        return self._lexicographic_objective(len(self._events))

    def objective_value(self) -> float:
        """Scalar objective of the last event; +inf for an empty history."""
        if not self._events:
            return math.inf
        return self._events[-1].objective_value

    def is_worse_than(self, other: State) -> bool:
        """
        Cheap bound check against another (best-found) state.

        Returns:
            True if any target already at its connection cap still has a
            deficit above the worst deficit recorded in other's last event

        Notes:
            - Always False if other has no events
            - A capped target cannot improve further on this branch
        """
        if not other._events:
            return False
        other_worst = other._events[-1].lexicographic_objective_value.worst_deficit
        cap = self.config.max_num_of_target_connections
        return any(
            t.num_of_connections == cap and (t.max_pressure - t.pressure) > other_worst
            for t in self._targets
        )

    # ========== Comparison ==========

    def key(self) -> tuple:
        """Search position: cylinder vectors only (event history ignored)."""
        return (tuple(t.key() for t in self._targets),
                tuple(d.key() for d in self._donors))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self.key() == other.key()

    def __lt__(self, other: State) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self.key() < other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    # ========== Validation & rendering ==========

    def validate_invariants(self) -> None:
        """
        Validate state invariants.

        Raises:
            ValueError: If any invariant is violated

        Invariants:
            - I1: num_of_connections matches the events referencing each cylinder
            - I3: event indices in range
        """
        target_counts = [0] * len(self._targets)
        donor_counts = [0] * len(self._donors)
        for event in self._events:
            # I3: indices in range
            if not (0 <= event.target_index < len(self._targets) and
                    0 <= event.donor_index < len(self._donors)):
                raise ValueError(
                    f"I3 violated: event D{event.donor_index} -> T{event.target_index} out of range"
                )
            target_counts[event.target_index] += 1
            donor_counts[event.donor_index] += 1

        # I1: connection counters
        for i, (t, count) in enumerate(zip(self._targets, target_counts)):
            if t.num_of_connections != count:
                raise ValueError(
                    f"I1 violated: target {i} has {t.num_of_connections} connections, "
                    f"{count} event(s) reference it"
                )
        for i, (d, count) in enumerate(zip(self._donors, donor_counts)):
            if d.num_of_connections != count:
                raise ValueError(
                    f"I1 violated: donor {i} has {d.num_of_connections} connections, "
                    f"{count} event(s) reference it"
                )

    def describe(self) -> str:
        """Render objective, cylinders and transfer path as text."""
        v1, v2, v3, v4 = self.lexicographic_objective()
        lines = [f"Objective: {v1:g}, {v2:g}, {v3:g}, {v4:g}", "Targets:"]
        lines += [t.describe(i) for i, t in enumerate(self._targets, start=1)]
        lines.append("Donors:")
        lines += [d.describe(i) for i, d in enumerate(self._donors, start=1)]
        if self._events:
            lines += ["", "Path:"]
            lines += [e.describe(i) for i, e in enumerate(self._events, start=1)]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return (f"State(num_targets={len(self._targets)}, num_donors={len(self._donors)}, "
                f"num_events={len(self._events)}, objective_value={self.objective_value():g})")
