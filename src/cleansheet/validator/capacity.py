# src/cleansheet/validator/capacity.py
"""
@brief
Phase demand vs worker capacity aggregation.

@details
Demand: for every phase listed in a task's `PreferredPhases`, the task's
`Duration` is added to that phase.

Capacity is a known simplification. The data model does not say how a time
slot (`{start, end}`) maps to a phase, so every well-formed slot of a worker
contributes that worker's `MaxLoadPerPhase` to `PLACEHOLDER_PHASE`. A missing,
non-numeric or zero load counts as 1. Phases other than the placeholder
therefore always have zero capacity.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from cleansheet.schemas.models import EntityKind, Finding, Severity, Task, Worker
from cleansheet.validator.parsing import (
    format_number,
    is_present,
    try_parse_number,
    try_parse_phase_list,
    try_parse_slot_list,
)

PLACEHOLDER_PHASE = 1


@dataclass(slots=True)
class PhaseLoad:
    """Aggregated demand and capacity keyed by phase number (first-seen order)."""

    demand: dict[float, float] = field(default_factory=dict)
    capacity: dict[float, float] = field(default_factory=dict)

    def shortfall(self, phase: float) -> float:
        return self.demand.get(phase, 0.0) - self.capacity.get(phase, 0.0)

    @property
    def phases(self) -> list[float]:
        out = list(self.demand)
        out.extend(p for p in self.capacity if p not in self.demand)
        return out


def compute_phase_load(workers: Sequence[Worker], tasks: Sequence[Task]) -> PhaseLoad:
    load = PhaseLoad()

    # (1) Task demand per preferred phase
    for task in tasks:
        if not is_present(task.preferred_phases) or not is_present(task.duration):
            continue
        phases = try_parse_phase_list(task.preferred_phases)
        duration = try_parse_number(task.duration)
        if not phases.ok or not duration.ok:
            continue
        for phase in phases.value:
            load.demand[phase] = load.demand.get(phase, 0.0) + duration.value

    # (2) Worker capacity, all booked on the placeholder phase
    for worker in workers:
        if not is_present(worker.available_slots):
            continue
        slots = try_parse_slot_list(worker.available_slots)
        if not slots.ok:
            continue
        max_load = try_parse_number(worker.max_load_per_phase)
        per_slot = max_load.value if max_load.ok and max_load.value else 1.0
        for _slot in slots.value:
            load.capacity[PLACEHOLDER_PHASE] = load.capacity.get(PLACEHOLDER_PHASE, 0.0) + per_slot

    return load


def check_phase_saturation(workers: Sequence[Worker], tasks: Sequence[Task]) -> list[Finding]:
    """One warning per phase whose demand exceeds its capacity."""
    load = compute_phase_load(workers, tasks)
    findings: list[Finding] = []
    for phase, demand in load.demand.items():
        capacity = load.capacity.get(phase, 0.0)
        if demand <= capacity:
            continue
        label = format_number(phase)
        findings.append(
            Finding(
                entity=EntityKind.TASKS,
                row_id=f"phase-{label}",
                field="Scheduling",
                message=(
                    f"Phase {label} demand ({format_number(demand)}) exceeds "
                    f"capacity ({format_number(capacity)})"
                ),
                severity=Severity.WARNING,
                context={
                    "phase": phase,
                    "demand": demand,
                    "capacity": capacity,
                    "shortfall": demand - capacity,
                },
            )
        )
    return findings


__all__ = ["PLACEHOLDER_PHASE", "PhaseLoad", "compute_phase_load", "check_phase_saturation"]
