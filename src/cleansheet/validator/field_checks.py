# src/cleansheet/validator/field_checks.py
"""
@brief
Per-row checks for clients, workers and tasks.

@details
Each check validates one row against a fixed checklist and returns its findings
in checklist order. The other collections are read for referential checks
only. Malformed cells never raise: a failed parse becomes a finding and the
remaining fields are still checked.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from cleansheet.schemas.models import Client, EntityKind, Finding, Severity, Task, Worker
from cleansheet.validator.parsing import (
    as_text,
    format_number,
    is_present,
    split_list,
    try_parse_json_object,
    try_parse_number,
    try_parse_phase_list,
    try_parse_slot_list,
)


def _finding(
    entity: EntityKind,
    row_id: str,
    field: str,
    message: str,
    severity: Severity,
    **context: Any,
) -> Finding:
    return Finding(
        entity=entity,
        row_id=row_id,
        field=field,
        message=message,
        severity=severity,
        context=context,
    )


def worker_skill_set(worker: Worker) -> set[str]:
    return set(split_list(worker.skills))


def qualified_workers(required: Sequence[str], workers: Sequence[Worker]) -> list[Worker]:
    """Workers with a non-empty skill set that covers every required skill."""
    needed = set(required)
    out: list[Worker] = []
    for worker in workers:
        skills = worker_skill_set(worker)
        if skills and needed <= skills:
            out.append(worker)
    return out


# ----------------------------
# CLIENTS
# ----------------------------
def check_client(client: Client, tasks: Sequence[Task]) -> list[Finding]:
    findings: list[Finding] = []
    kind = EntityKind.CLIENTS
    row_id = client.row_id

    # (1) Required columns
    if not as_text(client.name):
        findings.append(_finding(kind, row_id, "Name", "Name is required", Severity.ERROR))

    if not row_id:
        findings.append(
            _finding(kind, row_id, "ClientID", "ClientID is required", Severity.ERROR)
        )

    # (2) AttributesJSON must decode to an object
    if is_present(client.attributes_json):
        parsed = try_parse_json_object(client.attributes_json)
        if not parsed.ok:
            message = (
                "AttributesJSON must be a JSON object"
                if parsed.error == "not a JSON object"
                else "Invalid JSON format"
            )
            findings.append(_finding(kind, row_id, "AttributesJSON", message, Severity.ERROR))

    # (3) Requested tasks must exist
    if is_present(client.requested_task_ids):
        requested = split_list(client.requested_task_ids)
        existing = {t.row_id for t in tasks if t.row_id}
        missing = [tid for tid in requested if tid not in existing]
        if missing:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "RequestedTaskIDs",
                    f"Referenced tasks not found: {', '.join(missing)}",
                    Severity.WARNING,
                    missing=missing,
                )
            )

    return findings


# ----------------------------
# WORKERS
# ----------------------------
def check_worker(worker: Worker) -> list[Finding]:
    findings: list[Finding] = []
    kind = EntityKind.WORKERS
    row_id = worker.row_id

    if not row_id:
        findings.append(
            _finding(kind, row_id, "WorkerID", "WorkerID is required", Severity.ERROR)
        )

    max_load = (
        try_parse_number(worker.max_load_per_phase)
        if is_present(worker.max_load_per_phase)
        else None
    )

    # (1) Slot list structure, then slot count vs declared load
    if is_present(worker.available_slots):
        slots = try_parse_slot_list(worker.available_slots)
        if not slots.ok:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "AvailableSlots",
                    "AvailableSlots must be an array of objects with start/end properties",
                    Severity.ERROR,
                )
            )
        elif max_load is not None and max_load.ok and max_load.value > 0:
            if len(slots.value) < max_load.value:
                findings.append(
                    _finding(
                        kind,
                        row_id,
                        "AvailableSlots",
                        f"Worker has {len(slots.value)} slots but MaxLoadPerPhase is "
                        f"{format_number(max_load.value)} (potential overload)",
                        Severity.WARNING,
                        slots=len(slots.value),
                        max_load=max_load.value,
                    )
                )

    # (2) MaxLoadPerPhase must be a positive integer
    if max_load is not None:
        if not max_load.ok or not max_load.value.is_integer() or max_load.value <= 0:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "MaxLoadPerPhase",
                    "MaxLoadPerPhase must be a positive integer",
                    Severity.ERROR,
                )
            )

    if not split_list(worker.skills):
        findings.append(_finding(kind, row_id, "Skills", "Skills are required", Severity.ERROR))

    return findings


# ----------------------------
# TASKS
# ----------------------------
def check_task(task: Task, workers: Sequence[Worker]) -> list[Finding]:
    findings: list[Finding] = []
    kind = EntityKind.TASKS
    row_id = task.row_id

    # (1) Duration >= 1
    if is_present(task.duration):
        duration = try_parse_number(task.duration)
        if not duration.ok or duration.value < 1:
            findings.append(
                _finding(kind, row_id, "Duration", "Duration must be at least 1", Severity.ERROR)
            )

    # (2) PriorityLevel in [1, 5]
    if is_present(task.priority_level):
        priority = try_parse_number(task.priority_level)
        if not priority.ok or not 1 <= priority.value <= 5:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "PriorityLevel",
                    "PriorityLevel must be between 1 and 5",
                    Severity.ERROR,
                )
            )

    # (3) PreferredPhases must be an array of numbers
    if is_present(task.preferred_phases):
        if not try_parse_phase_list(task.preferred_phases).ok:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "PreferredPhases",
                    "PreferredPhases must be an array of numbers",
                    Severity.ERROR,
                )
            )

    max_concurrent = (
        try_parse_number(task.max_concurrent) if is_present(task.max_concurrent) else None
    )

    # (4) Skill coverage across the roster and concurrency feasibility
    if is_present(task.required_skills):
        required = split_list(task.required_skills)
        roster: set[str] = set()
        for worker in workers:
            roster |= worker_skill_set(worker)

        unmatched = [skill for skill in required if skill not in roster]
        if unmatched:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "RequiredSkills",
                    f"No worker has skills: {', '.join(unmatched)}",
                    Severity.WARNING,
                    unmatched=unmatched,
                )
            )

        qualified = qualified_workers(required, workers)
        if not qualified:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "RequiredSkills",
                    "No workers match all required skills",
                    Severity.ERROR,
                )
            )
        elif max_concurrent is not None and max_concurrent.ok:
            if max_concurrent.value > len(qualified):
                findings.append(
                    _finding(
                        kind,
                        row_id,
                        "MaxConcurrent",
                        f"MaxConcurrent ({format_number(max_concurrent.value)}) exceeds "
                        f"qualified workers ({len(qualified)})",
                        Severity.WARNING,
                        qualified=[w.row_id for w in qualified],
                    )
                )

    # (5) MaxConcurrent > 0
    if max_concurrent is not None:
        if not max_concurrent.ok or max_concurrent.value <= 0:
            findings.append(
                _finding(
                    kind,
                    row_id,
                    "MaxConcurrent",
                    "MaxConcurrent must be greater than 0",
                    Severity.ERROR,
                )
            )

    return findings


__all__ = ["check_client", "check_worker", "check_task", "qualified_workers"]
