# src/cleansheet/advisory/prompts.py
"""Prompt templates for the generative advisory model."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from cleansheet.schemas.advisory import FixRequest


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


def _rows(rows: Sequence[Any]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for row in rows:
        if hasattr(row, "to_row"):
            out.append(row.to_row())
        elif isinstance(row, BaseModel):
            out.append(row.model_dump(by_alias=True))
        else:
            out.append(dict(row))
    return out


def _collections_block(
    clients: Sequence[Any], workers: Sequence[Any], tasks: Sequence[Any], sample_rows: int
) -> str:
    parts = []
    for label, rows in (("CLIENTS", clients), ("WORKERS", workers), ("TASKS", tasks)):
        parts.append(f"{label} ({len(rows)} records):\n{_dump(_rows(rows[:sample_rows]))}")
    return "\n\n".join(parts)


def build_fix_prompt(request: FixRequest, sample_rows: int = 3) -> str:
    finding = request.finding
    return f"""You are a data validation expert. Analyze the following validation error and suggest a specific fix.

ERROR DETAILS:
- Entity Type: {finding.entity}
- Row ID: {finding.row_id}
- Field: {finding.field}
- Error Message: {finding.message}
- Severity: {finding.severity}

CURRENT DATA:
{_dump(request.current_data)}

ALL AVAILABLE DATA:
{_collections_block(request.clients, request.workers, request.tasks, sample_rows)}

INSTRUCTIONS:
1. Analyze the error and the current data
2. Suggest a specific value that would fix this validation error
3. Provide a clear explanation of why this fix makes sense
4. Rate your confidence in this suggestion (0-100)

RESPONSE FORMAT (JSON only):
{{
  "suggestedValue": "the specific value to fix the error",
  "explanation": "clear explanation of why this fix works",
  "confidence": 85
}}

Examples:
- For missing required field: suggest a reasonable default value
- For invalid format: suggest the correct format
- For missing reference: suggest an existing valid reference
- For duplicate ID: suggest a unique ID
- For invalid JSON: suggest valid JSON structure

Respond with only the JSON object, no additional text."""


def build_insights_prompt(
    insights: Sequence[BaseModel],
    clients: Sequence[Any],
    workers: Sequence[Any],
    tasks: Sequence[Any],
    sample_rows: int = 3,
) -> str:
    existing = [i.model_dump(by_alias=True) for i in insights]
    return f"""Analyze this business data and provide additional data quality insights:

{_collections_block(clients, workers, tasks, sample_rows)}

EXISTING INSIGHTS:
{_dump(existing)}

Provide 2-3 additional data quality insights focusing on:
1. Business efficiency and productivity
2. Resource allocation and capacity planning
3. Data completeness and accuracy
4. Process optimization opportunities

Respond with JSON array of insights in this format:
[{{
  "id": "ai-insight-1",
  "type": "imbalance|missing|duplicate|outlier|efficiency|capacity",
  "title": "Insight Title",
  "description": "Detailed description of the insight",
  "severity": "critical|warning|info",
  "impact": "Business impact of this issue",
  "recommendation": "Actionable recommendation",
  "metrics": {{"current": 5, "expected": 3, "percentage": 167}},
  "affectedEntities": ["clients", "workers", "tasks"]
}}]"""


def build_suggestions_prompt(
    suggestions: Sequence[BaseModel],
    clients: Sequence[Any],
    workers: Sequence[Any],
    tasks: Sequence[Any],
    sample_rows: int = 3,
) -> str:
    existing = [s.model_dump(by_alias=True) for s in suggestions]
    return f"""Analyze this business data and suggest additional smart rules:

{_collections_block(clients, workers, tasks, sample_rows)}

EXISTING SUGGESTIONS:
{_dump(existing)}

Suggest 2-3 additional smart business rules based on data patterns. Focus on:
1. Data quality rules (required fields, format validation)
2. Business logic rules (priority relationships, capacity planning)
3. Cross-entity rules (client-worker-task relationships)

Respond with JSON array of rule suggestions in this format:
[{{
  "id": "ai-suggestion-1",
  "title": "Rule Title",
  "description": "Rule description",
  "ruleType": "validation|relationship|business|quality",
  "entityType": "clients|workers|tasks|cross-entity",
  "suggestedRule": {{
    "type": "rule-type",
    "conditions": [{{"field": "fieldName", "operator": "equals", "value": "value"}}],
    "actions": [{{"action": "validate", "message": "message"}}],
    "severity": "error|warning|info"
  }},
  "confidence": 85,
  "reasoning": "Why this rule makes sense",
  "examples": ["Example 1", "Example 2"]
}}]"""


__all__ = ["build_fix_prompt", "build_insights_prompt", "build_suggestions_prompt"]
