# src/cleansheet/validator/cross_checks.py
from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from cleansheet.schemas.models import Client, Finding, Severity, Task, Worker, _RowModel


def _duplicates_in(rows: Sequence[_RowModel]) -> list[Finding]:
    """
    @brief
    Group one collection by its identifying field and flag repeated values.

    @details
    Empty identifiers are ignored (the per-row check already reports them).
    Positions are 1-based in upload order; findings follow first appearance.
    """
    if not rows:
        return []
    model = type(rows[0])
    positions: dict[str, list[int]] = defaultdict(list)
    for index, row in enumerate(rows, start=1):
        if row.row_id:
            positions[row.row_id].append(index)

    findings: list[Finding] = []
    for value, seen in positions.items():
        if len(seen) < 2:
            continue
        findings.append(
            Finding(
                entity=model.KIND,
                row_id=value,
                field=model.ID_COLUMN,
                message=(
                    f"Duplicate {model.ID_COLUMN} found in rows: "
                    f"{', '.join(f'Row {i}' for i in seen)}"
                ),
                severity=Severity.ERROR,
                context={"rows": seen},
            )
        )
    return findings


def check_duplicate_ids(
    clients: Sequence[Client], workers: Sequence[Worker], tasks: Sequence[Task]
) -> list[Finding]:
    """Duplicate-ID findings for clients, then workers, then tasks."""
    return _duplicates_in(clients) + _duplicates_in(workers) + _duplicates_in(tasks)


__all__ = ["check_duplicate_ids"]
