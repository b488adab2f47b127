# src/cleansheet/insights/quality.py
"""
@brief
Heuristic data-quality insights over the three collections.

@details
Unlike validation findings, insights describe the data set as a whole
(workload balance, completeness, prioritisation, deadlines) and carry a
business-facing severity: critical, warning or info. They never affect
`ValidationResult.is_valid`.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import date

import pandas as pd

from cleansheet.schemas.insights import InsightMetrics, QualityInsight
from cleansheet.schemas.models import Client, Task, Worker
from cleansheet.validator.parsing import as_text

CLOSED_STATUSES = frozenset({"completed", "closed"})

ACTIVE_TASKS_PER_WORKER_HIGH = 5.0
ACTIVE_TASKS_PER_WORKER_LOW = 1.0
DEPARTMENT_TASKS_PER_WORKER_MAX = 8.0
INACTIVE_CLIENT_SHARE_MAX = 30.0


def _status(task: Task) -> str:
    return as_text(task.status).lower()


def _priority(task: Task) -> str:
    return as_text(task.get("Priority")).lower()


def _due_date(task: Task) -> date | None:
    """DueDate as a calendar date, or None when missing or unparseable."""
    text = as_text(task.due_date)
    if not text:
        return None
    stamp = pd.to_datetime(text, errors="coerce")
    if pd.isna(stamp):
        return None
    return stamp.date()


def _pct(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole else 0


def _load_balance(workers: Sequence[Worker], tasks: Sequence[Task]) -> list[QualityInsight]:
    if not workers or not tasks:
        return []
    active = [t for t in tasks if _status(t) not in CLOSED_STATUSES]
    per_worker = len(active) / len(workers)

    if per_worker > ACTIVE_TASKS_PER_WORKER_HIGH:
        return [
            QualityInsight(
                id="worker-task-imbalance",
                type="capacity",
                title="High Task Load per Worker",
                description=(
                    f"You have {len(workers)} workers but {len(active)} active tasks "
                    f"({per_worker:.1f} tasks per worker)."
                ),
                severity="critical",
                impact="Workers may be overwhelmed, leading to missed deadlines and reduced quality.",
                recommendation="Consider adding workers or redistributing tasks to balance the workload.",
                metrics=InsightMetrics(current=per_worker, expected=3, percentage=_pct(per_worker, 3)),
                affected_entities=["workers", "tasks"],
            )
        ]
    if per_worker < ACTIVE_TASKS_PER_WORKER_LOW:
        return [
            QualityInsight(
                id="underutilized-workers",
                type="efficiency",
                title="Underutilized Workers",
                description=(
                    f"You have {len(workers)} workers but only {len(active)} active tasks "
                    f"({per_worker:.1f} tasks per worker)."
                ),
                severity="warning",
                impact="Workers may be idle, leading to increased costs and reduced productivity.",
                recommendation="Consider taking on more work or reassigning workers to other departments.",
                metrics=InsightMetrics(current=per_worker, expected=2, percentage=_pct(per_worker, 2)),
                affected_entities=["workers", "tasks"],
            )
        ]
    return []


def _missing_data(clients: Sequence[Client], workers: Sequence[Worker]) -> list[QualityInsight]:
    insights: list[QualityInsight] = []

    no_email = sum(1 for c in clients if not as_text(c.email))
    if no_email:
        insights.append(
            QualityInsight(
                id="missing-client-emails",
                type="missing",
                title="Missing Client Email Addresses",
                description=f"{no_email} out of {len(clients)} clients are missing email addresses.",
                severity="critical" if no_email > len(clients) * 0.3 else "warning",
                impact="Missing emails can cause communication issues and delays in delivery.",
                recommendation="Collect the missing email addresses or mark the field as optional.",
                metrics=InsightMetrics(
                    current=no_email, expected=0, percentage=_pct(no_email, len(clients))
                ),
                affected_entities=["clients"],
            )
        )

    no_skills = sum(1 for w in workers if not as_text(w.skills))
    if no_skills:
        insights.append(
            QualityInsight(
                id="missing-worker-skills",
                type="missing",
                title="Missing Worker Skills Information",
                description=f"{no_skills} out of {len(workers)} workers are missing skills information.",
                severity="critical" if no_skills > len(workers) * 0.5 else "warning",
                impact="Missing skills data makes it difficult to assign appropriate tasks to workers.",
                recommendation="Update worker profiles with their skills and expertise areas.",
                metrics=InsightMetrics(
                    current=no_skills, expected=0, percentage=_pct(no_skills, len(workers))
                ),
                affected_entities=["workers"],
            )
        )
    return insights


def _priority_mix(tasks: Sequence[Task]) -> list[QualityInsight]:
    if not tasks:
        return []
    counts = Counter(_priority(t) for t in tasks)
    high = counts["high"] / len(tasks) * 100
    low = counts["low"] / len(tasks) * 100

    insights: list[QualityInsight] = []
    if high > 50:
        insights.append(
            QualityInsight(
                id="too-many-high-priority",
                type="outlier",
                title="Too Many High Priority Tasks",
                description=(
                    f"{high:.1f}% of tasks are marked as high priority "
                    f"({counts['high']} out of {len(tasks)})."
                ),
                severity="warning",
                impact="When everything is high priority, nothing is truly prioritized.",
                recommendation="Review and re-prioritize tasks with a more granular priority scale.",
                metrics=InsightMetrics(current=high, expected=20, percentage=round(high)),
                affected_entities=["tasks"],
            )
        )
    if low > 70:
        insights.append(
            QualityInsight(
                id="too-many-low-priority",
                type="outlier",
                title="Too Many Low Priority Tasks",
                description=(
                    f"{low:.1f}% of tasks are marked as low priority "
                    f"({counts['low']} out of {len(tasks)})."
                ),
                severity="info",
                impact="Low priority tasks may be neglected or delayed indefinitely.",
                recommendation="Check whether these tasks are necessary or can be automated.",
                metrics=InsightMetrics(current=low, expected=30, percentage=round(low)),
                affected_entities=["tasks"],
            )
        )
    return insights


def _overdue(tasks: Sequence[Task], today: date) -> list[QualityInsight]:
    dated = [t for t in tasks if as_text(t.due_date)]
    overdue = [
        t
        for t in dated
        if (due := _due_date(t)) is not None and due < today and _status(t) != "completed"
    ]
    if not overdue:
        return []
    return [
        QualityInsight(
            id="overdue-tasks",
            type="outlier",
            title="Overdue Tasks Detected",
            description=f"{len(overdue)} tasks are overdue and not yet completed.",
            severity="critical",
            impact="Overdue tasks can damage client relationships and affect timelines.",
            recommendation="Review overdue tasks now; extend deadlines or reassign resources.",
            metrics=InsightMetrics(
                current=len(overdue), expected=0, percentage=_pct(len(overdue), len(dated))
            ),
            affected_entities=["tasks"],
        )
    ]


def _inactive_clients(clients: Sequence[Client], tasks: Sequence[Task]) -> list[QualityInsight]:
    if not clients:
        return []
    with_tasks = {as_text(t.client_id) for t in tasks if as_text(t.client_id)}
    inactive = [c for c in clients if c.row_id not in with_tasks]
    share = len(inactive) / len(clients) * 100
    if share <= INACTIVE_CLIENT_SHARE_MAX:
        return []
    return [
        QualityInsight(
            id="inactive-clients",
            type="efficiency",
            title="Many Inactive Clients",
            description=(
                f"{share:.1f}% of clients ({len(inactive)} out of {len(clients)}) "
                "have no active tasks."
            ),
            severity="warning",
            impact="Inactive clients may indicate lost business or poor client retention.",
            recommendation="Reach out to inactive clients to understand their needs.",
            metrics=InsightMetrics(current=share, expected=10, percentage=round(share)),
            affected_entities=["clients", "tasks"],
        )
    ]


def _department_overload(workers: Sequence[Worker], tasks: Sequence[Task]) -> list[QualityInsight]:
    staff = Counter(as_text(w.department) for w in workers if as_text(w.department))
    load = Counter(as_text(t.get("Department")) for t in tasks if as_text(t.get("Department")))

    insights: list[QualityInsight] = []
    for dept, headcount in staff.items():
        per_worker = load.get(dept, 0) / headcount
        if per_worker <= DEPARTMENT_TASKS_PER_WORKER_MAX:
            continue
        insights.append(
            QualityInsight(
                id=f"department-overload-{dept}",
                type="capacity",
                title=f"{dept} Department Overloaded",
                description=(
                    f"{dept} department has {headcount} workers but {load.get(dept, 0)} tasks "
                    f"({per_worker:.1f} tasks per worker)."
                ),
                severity="critical",
                impact="Department may struggle to meet deadlines and maintain quality.",
                recommendation=f"Add workers to the {dept} department or redistribute tasks.",
                metrics=InsightMetrics(current=per_worker, expected=4, percentage=_pct(per_worker, 4)),
                affected_entities=["workers", "tasks"],
            )
        )
    return insights


def analyze_data_quality(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    today: date | None = None,
) -> list[QualityInsight]:
    """
    @brief
    Run every quality heuristic and return insights in a fixed order.

    @details
    Order: load balance, missing data, priority mix, overdue tasks, inactive
    clients, department overload. `today` anchors the overdue check and
    defaults to the current local date.
    """
    today = today or date.today()
    insights: list[QualityInsight] = []
    insights.extend(_load_balance(workers, tasks))
    insights.extend(_missing_data(clients, workers))
    insights.extend(_priority_mix(tasks))
    insights.extend(_overdue(tasks, today))
    insights.extend(_inactive_clients(clients, tasks))
    insights.extend(_department_overload(workers, tasks))
    return insights


__all__ = ["analyze_data_quality"]
