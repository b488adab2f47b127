# src/cleansheet/insights/suggestions.py
"""
@brief
Data pattern mining and rule suggestions.

@details
Pipeline:
    analyze_data_patterns()  -> list[DataPattern]
    generate_rule_suggestions(patterns) -> list[RuleSuggestion]
    convert_suggestion(suggestion) -> ConvertedRule | None

Only two suggestion kinds convert into something the rules document can
hold: `co-run` (a CoRunRule over the task ids named in the suggestion) and
`required-field` (a `validate<Field>` toggle). Everything else stays advisory.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import combinations

import pandas as pd

from cleansheet.schemas.insights import DataPattern, RuleSuggestion, SuggestedRule
from cleansheet.schemas.models import Client, Task, Worker
from cleansheet.schemas.rules import CoRunRule
from cleansheet.validator.parsing import as_text, split_list

TASK_ID_PATTERN = re.compile(r"T\d+")
MIN_CO_REQUEST_FREQUENCY = 2


@dataclass(frozen=True, slots=True)
class ToggleChange:
    """Validation toggle to set in RulesConfig.validation_rules."""

    entity: str
    flag: str
    value: bool
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ConvertedRule:
    business_rule: CoRunRule | None = None
    toggle: ToggleChange | None = None


def applied_rule_id(suggestion_id: str) -> str:
    return f"applied-{suggestion_id}"


# ------------------------------------------------------------
# Pattern mining
# ------------------------------------------------------------
def _co_requested_pairs(clients: Sequence[Client]) -> list[DataPattern]:
    counts: Counter[tuple[str, str]] = Counter()
    for client in clients:
        for pair in combinations(split_list(client.requested_task_ids), 2):
            counts[pair] += 1

    patterns: list[DataPattern] = []
    for (first, second), n in counts.items():
        if n < MIN_CO_REQUEST_FREQUENCY:
            continue
        patterns.append(
            DataPattern(
                type="correlation",
                description=f"Tasks {first} and {second} are frequently requested together ({n} times)",
                entities=["tasks"],
                fields=["TaskID", "Dependencies"],
                value={"task1": first, "task2": second, "frequency": n},
            )
        )
    return patterns


def _missing_fields(
    clients: Sequence[Client], workers: Sequence[Worker], tasks: Sequence[Task]
) -> list[DataPattern]:
    checks: list[tuple[str, Sequence, tuple[str, ...]]] = [
        ("clients", clients, ("Email", "Phone")),
        ("workers", workers, ("Email", "Skills")),
        ("tasks", tasks, ("DueDate",)),
    ]
    patterns: list[DataPattern] = []
    for entity, rows, columns in checks:
        missing = [col for col in columns if any(not as_text(row.get(col)) for row in rows)]
        if not missing:
            continue
        patterns.append(
            DataPattern(
                type="missing",
                description=f"Missing {', '.join(missing)} in {entity}",
                entities=[entity],
                fields=missing,
                frequency=1,
            )
        )
    return patterns


def _priority_due_date_inversion(tasks: Sequence[Task]) -> list[DataPattern]:
    frame = pd.DataFrame(
        {
            "priority": [as_text(t.get("Priority")).lower() for t in tasks],
            "due": [as_text(t.due_date) for t in tasks],
        }
    )
    if frame.empty or not (frame["priority"] == "high").any():
        return []
    due = frame["due"].where(frame["due"] != "")
    frame["due"] = pd.to_datetime(due, errors="coerce", format="mixed", utc=True)
    means = frame.dropna(subset=["due"]).groupby("priority")["due"].mean()
    if "high" not in means or "low" not in means:
        return []
    if means["high"] <= means["low"]:
        return []
    return [
        DataPattern(
            type="outlier",
            description="High priority tasks have later due dates than low priority tasks",
            entities=["tasks"],
            fields=["Priority", "DueDate"],
            value={
                "avgHighPriorityDueDate": means["high"].isoformat(),
                "avgLowPriorityDueDate": means["low"].isoformat(),
            },
        )
    ]


def analyze_data_patterns(
    clients: Sequence[Client], workers: Sequence[Worker], tasks: Sequence[Task]
) -> list[DataPattern]:
    """Co-requested task pairs, missing optional fields, priority/due-date inversion."""
    patterns: list[DataPattern] = []
    patterns.extend(_co_requested_pairs(clients))
    patterns.extend(_missing_fields(clients, workers, tasks))
    patterns.extend(_priority_due_date_inversion(tasks))
    return patterns


# ------------------------------------------------------------
# Suggestions
# ------------------------------------------------------------
def generate_rule_suggestions(patterns: Sequence[DataPattern]) -> list[RuleSuggestion]:
    """
    @brief
    Map each pattern to zero or more RuleSuggestion entries.

    @details
    Suggestion ids embed the pattern index so they stay unique and stable for
    identical input.
    """
    suggestions: list[RuleSuggestion] = []
    for index, pattern in enumerate(patterns):
        if pattern.type == "correlation" and isinstance(pattern.value, dict):
            first, second = pattern.value.get("task1"), pattern.value.get("task2")
            frequency = int(pattern.value.get("frequency", 0))
            if not first or not second:
                continue
            suggestions.append(
                RuleSuggestion(
                    id=f"correlation-{index}",
                    title=f"Co-run Rule for {first} and {second}",
                    description="These tasks are frequently requested together. Consider creating a co-run rule.",
                    rule_type="relationship",
                    entity_type="tasks",
                    suggested_rule=SuggestedRule(
                        type="co-run",
                        conditions=[{"field": "TaskID", "operator": "equals", "value": first}],
                        actions=[{"action": "auto-assign", "target": second}],
                        severity="info",
                    ),
                    confidence=min(90, 60 + frequency * 10),
                    reasoning=(
                        f"Found {frequency} instances where these tasks were requested "
                        "together, suggesting a strong correlation."
                    ),
                    examples=[f"Client requested both {first} and {second}"],
                )
            )

        elif pattern.type == "missing" and pattern.entities:
            entity = pattern.entities[0]
            for field in pattern.fields:
                suggestions.append(
                    RuleSuggestion(
                        id=f"missing-{entity}-{field}-{index}",
                        title=f"Required {field} for {entity}",
                        description=f"Many {entity} are missing {field}. Consider making this field required.",
                        rule_type="validation",
                        entity_type=entity,
                        suggested_rule=SuggestedRule(
                            type="required-field",
                            conditions=[{"field": field, "operator": "empty", "value": True}],
                            actions=[{"action": "validate", "message": f"{field} is required"}],
                            severity="error",
                        ),
                        confidence=85,
                        reasoning=(
                            f"Found missing {field} values in {entity} data, "
                            "indicating this field should be required."
                        ),
                        examples=[f"{entity} without {field} may cause issues"],
                    )
                )

        elif pattern.type == "outlier" and pattern.fields == ["Priority", "DueDate"]:
            suggestions.append(
                RuleSuggestion(
                    id=f"priority-due-date-{index}",
                    title="Priority Due Date Validation",
                    description="High priority tasks should have earlier due dates than low priority tasks.",
                    rule_type="business",
                    entity_type="tasks",
                    suggested_rule=SuggestedRule(
                        type="priority-due-date",
                        conditions=[
                            {"field": "Priority", "operator": "equals", "value": "high"},
                            {"field": "DueDate", "operator": "exists", "value": True},
                        ],
                        actions=[
                            {
                                "action": "validate",
                                "message": "High priority tasks should have earlier due dates",
                            }
                        ],
                        severity="warning",
                    ),
                    confidence=75,
                    reasoning=(
                        "High priority tasks due later than low priority ones may "
                        "indicate incorrect prioritization."
                    ),
                    examples=["High priority task due in 2 weeks, low priority task due tomorrow"],
                )
            )
    return suggestions


# ------------------------------------------------------------
# Conversion
# ------------------------------------------------------------
def _task_ids_in(suggestion: RuleSuggestion) -> list[str]:
    """Distinct T<digits> ids from examples, title and description (first-seen order)."""
    found: list[str] = []
    for text in [*suggestion.examples, suggestion.title, suggestion.description]:
        for match in TASK_ID_PATTERN.findall(text):
            if match not in found:
                found.append(match)
    return found


def convert_suggestion(suggestion: RuleSuggestion) -> ConvertedRule | None:
    """
    @brief
    Turn an accepted suggestion into a business rule or a validation toggle.

    @returns
        ConvertedRule, or None when the suggestion has no rules-document form
        (fewer than two task ids, no field name, or an unsupported type).
    """
    kind = suggestion.suggested_rule.type

    if kind == "co-run":
        task_ids = _task_ids_in(suggestion)
        if len(task_ids) < 2:
            return None
        return ConvertedRule(
            business_rule=CoRunRule(
                id=applied_rule_id(suggestion.id),
                task_ids=task_ids,
                description=suggestion.description,
            )
        )

    if kind == "required-field":
        conditions = suggestion.suggested_rule.conditions
        field = str(conditions[0].get("field") or "") if conditions else ""
        if not field or suggestion.entity_type == "cross-entity":
            return None
        return ConvertedRule(
            toggle=ToggleChange(
                entity=suggestion.entity_type,
                flag=f"validate{field[0].upper()}{field[1:]}",
                value=True,
                description=suggestion.description,
            )
        )

    return None


__all__ = [
    "ToggleChange",
    "ConvertedRule",
    "applied_rule_id",
    "analyze_data_patterns",
    "generate_rule_suggestions",
    "convert_suggestion",
]
