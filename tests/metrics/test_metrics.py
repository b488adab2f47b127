# tests/metrics/test_metrics.py
from __future__ import annotations

import json

from cleansheet.dataloader.normalizer import normalize_rows
from cleansheet.metrics.metrics import collect_metrics
from cleansheet.schemas.models import EntityKind, Finding, ValidationResult


def _finding(entity, row_id, field, severity):
    return Finding(entity=entity, row_id=row_id, field=field, message="m", severity=severity)


def test_collect_metrics_without_findings():
    # --- Arrange ---
    clients = normalize_rows(EntityKind.CLIENTS, [{"ClientID": "C1"}])

    # --- Act ---
    metrics = collect_metrics(ValidationResult(), clients, [], [])

    # --- Assert ---
    assert metrics == {
        "valid": True,
        "num_clients": 1,
        "num_workers": 0,
        "num_tasks": 0,
        "num_findings": 0,
        "num_errors": 0,
        "num_warnings": 0,
        "by_entity": {},
        "by_field": {},
        "rows_with_errors": 0,
    }


def test_collect_metrics_breakdowns():
    """
    @brief
    Severity totals, per-entity tables and distinct error rows.

    @details
    Two errors on the same task row count as one row with errors.
    """
    # --- Arrange ---
    result = ValidationResult(
        findings=[
            _finding("tasks", "T1", "Duration", "error"),
            _finding("tasks", "T1", "PreferredPhases", "error"),
            _finding("tasks", "T2", "RequiredSkills", "warning"),
            _finding("clients", "C1", "AttributesJSON", "error"),
        ],
        is_valid=False,
    )

    # --- Act ---
    metrics = collect_metrics(result, [], [], [])

    # --- Assert ---
    assert metrics["valid"] is False
    assert metrics["num_findings"] == 4
    assert metrics["num_errors"] == 3
    assert metrics["num_warnings"] == 1
    assert metrics["by_entity"] == {
        "clients": {"error": 1},
        "tasks": {"error": 2, "warning": 1},
    }
    assert metrics["by_field"] == {
        "AttributesJSON": 1,
        "Duration": 1,
        "PreferredPhases": 1,
        "RequiredSkills": 1,
    }
    assert metrics["rows_with_errors"] == 2
    # plain python types only
    json.dumps(metrics)
