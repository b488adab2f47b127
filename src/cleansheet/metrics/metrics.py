# src/cleansheet/metrics/metrics.py
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pandas as pd

from cleansheet.schemas.models import Client, Task, ValidationResult, Worker


def collect_metrics(
    result: ValidationResult,
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
) -> dict[str, Any]:
    """
    @brief
    Builds a JSON-serializable summary of one validation run.

    @details
    Row counts per collection, finding counts by severity, by entity and by
    field, plus the number of distinct rows carrying at least one error.
    Deterministic: no timestamp, keys sorted by the writer.
    """
    metrics: dict[str, Any] = {
        "valid": bool(result.is_valid),
        "num_clients": len(clients),
        "num_workers": len(workers),
        "num_tasks": len(tasks),
        "num_findings": len(result.findings),
        "num_errors": 0,
        "num_warnings": 0,
        "by_entity": {},
        "by_field": {},
        "rows_with_errors": 0,
    }
    if not result.findings:
        return metrics

    # (1) Tabulate findings
    frame = pd.DataFrame([f.model_dump(exclude={"context"}) for f in result.findings])

    # (2) Severity totals
    severity_counts = frame["severity"].value_counts()
    metrics["num_errors"] = int(severity_counts.get("error", 0))
    metrics["num_warnings"] = int(severity_counts.get("warning", 0))

    # (3) Breakdown tables: {entity: {severity: n}}, {field: n}
    by_entity = frame.groupby(["entity", "severity"]).size()
    metrics["by_entity"] = {
        entity: {sev: int(n) for (ent, sev), n in by_entity.items() if ent == entity}
        for entity in sorted(frame["entity"].unique())
    }
    metrics["by_field"] = {
        str(field): int(n) for field, n in frame["field"].value_counts().sort_index().items()
    }

    # (4) Distinct rows with blocking findings
    errors = frame[frame["severity"] == "error"]
    metrics["rows_with_errors"] = int(errors[["entity", "row_id"]].drop_duplicates().shape[0])
    return metrics
