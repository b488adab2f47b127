# tests/insights/test_quality.py
from __future__ import annotations

from datetime import date

from cleansheet.dataloader.normalizer import normalize_rows
from cleansheet.insights.quality import analyze_data_quality
from cleansheet.schemas.models import EntityKind

TODAY = date(2025, 1, 1)


def mk(kind, rows):
    return normalize_rows(kind, rows)


def _ids(insights):
    return [i.id for i in insights]


def test_everything_flagged_in_fixed_order():
    """
    @brief
    One overloaded data set triggers every heuristic family.

    @details
    Expected order: load balance, missing data, priority mix, overdue,
    inactive clients, department overload.
    """
    # --- Arrange ---
    clients = mk(
        EntityKind.CLIENTS,
        [
            {"ClientID": "C1", "Email": "a@x.io"},
            {"ClientID": "C2", "Email": ""},
            {"ClientID": "C3"},
        ],
    )
    workers = mk(EntityKind.WORKERS, [{"WorkerID": "W1", "Department": "Eng", "Skills": ""}])
    tasks = mk(
        EntityKind.TASKS,
        [
            {
                "TaskID": f"T{i}",
                "ClientID": "C1",
                "Status": "open",
                "Priority": "High",
                "Department": "Eng",
                "DueDate": "2024-06-01" if i == 1 else "",
            }
            for i in range(1, 11)
        ],
    )

    # --- Act ---
    insights = analyze_data_quality(clients, workers, tasks, today=TODAY)

    # --- Assert ---
    assert _ids(insights) == [
        "worker-task-imbalance",
        "missing-client-emails",
        "missing-worker-skills",
        "too-many-high-priority",
        "overdue-tasks",
        "inactive-clients",
        "department-overload-Eng",
    ]
    by_id = {i.id: i for i in insights}
    assert by_id["worker-task-imbalance"].metrics.current == 10
    assert by_id["missing-client-emails"].severity == "critical"
    assert by_id["missing-worker-skills"].severity == "critical"
    assert by_id["overdue-tasks"].metrics.current == 1
    assert by_id["overdue-tasks"].metrics.percentage == 100
    assert by_id["department-overload-Eng"].affected_entities == ["workers", "tasks"]


def test_clean_data_has_no_insights():
    clients = mk(EntityKind.CLIENTS, [{"ClientID": "C1", "Email": "a@x.io"}])
    workers = mk(EntityKind.WORKERS, [{"WorkerID": "W1", "Skills": "py"}])
    tasks = mk(
        EntityKind.TASKS,
        [
            {"TaskID": "T1", "ClientID": "C1", "Priority": "medium", "DueDate": "2030-01-01"},
            {"TaskID": "T2", "ClientID": "C1", "Priority": "low"},
        ],
    )

    assert analyze_data_quality(clients, workers, tasks, today=TODAY) == []


def test_underutilized_workers_ignore_completed_tasks():
    # --- Arrange ---
    workers = mk(EntityKind.WORKERS, [{"WorkerID": f"W{i}", "Skills": "x"} for i in range(3)])
    tasks = mk(
        EntityKind.TASKS,
        [
            {"TaskID": "T1", "Status": "open"},
            {"TaskID": "T2", "Status": "Completed"},
            {"TaskID": "T3", "Status": "closed"},
        ],
    )

    # --- Act ---
    insights = analyze_data_quality([], workers, tasks, today=TODAY)

    # --- Assert ---
    assert _ids(insights) == ["underutilized-workers"]
    assert insights[0].severity == "warning"


def test_missing_email_below_threshold_is_warning():
    clients = mk(
        EntityKind.CLIENTS,
        [{"ClientID": f"C{i}", "Email": "" if i == 0 else "x@y.z"} for i in range(4)],
    )

    insights = analyze_data_quality(clients, [], [], today=TODAY)

    assert _ids(insights) == ["missing-client-emails", "inactive-clients"]
    assert insights[0].severity == "warning"
    assert insights[0].metrics.percentage == 25


def test_low_priority_share_is_info():
    tasks = mk(EntityKind.TASKS, [{"TaskID": f"T{i}", "Priority": "low"} for i in range(4)])

    insights = analyze_data_quality([], [], tasks, today=TODAY)

    assert _ids(insights) == ["too-many-low-priority"]
    assert insights[0].severity == "info"


def test_overdue_skips_completed_and_unparseable_dates():
    tasks = mk(
        EntityKind.TASKS,
        [
            {"TaskID": "T1", "DueDate": "2024-12-31", "Status": "completed"},
            {"TaskID": "T2", "DueDate": "not a date"},
            {"TaskID": "T3", "DueDate": "2025-01-01"},
        ],
    )

    assert analyze_data_quality([], [], tasks, today=TODAY) == []
