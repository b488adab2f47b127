"""
@brief
Models for data-quality insights, detected data patterns and rule suggestions.

@details
Field aliases follow the camelCase keys used in advisory prompts so that
entries returned by the generative model validate directly into these types.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class _InsightModel(BaseModel):
    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
    }


class InsightMetrics(_InsightModel):
    current: float
    expected: float | None = None
    percentage: float | None = None


class QualityInsight(_InsightModel):
    id: str
    type: Literal["imbalance", "missing", "duplicate", "outlier", "efficiency", "capacity"]
    title: str
    description: str
    severity: Literal["critical", "warning", "info"]
    impact: str
    recommendation: str
    metrics: InsightMetrics
    affected_entities: list[str] = Field(default_factory=list, alias="affectedEntities")


class DataPattern(_InsightModel):
    type: Literal["correlation", "frequency", "missing", "duplicate", "outlier"]
    description: str
    entities: list[str] = Field(default_factory=list)
    fields: list[str] = Field(default_factory=list)
    value: Any = None
    frequency: int | None = None


class SuggestedRule(_InsightModel):
    type: str
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    severity: Literal["error", "warning", "info"] = "info"


class RuleSuggestion(_InsightModel):
    id: str
    title: str
    description: str
    rule_type: Literal["validation", "relationship", "business", "quality"] = Field(
        ..., alias="ruleType"
    )
    entity_type: Literal["clients", "workers", "tasks", "cross-entity"] = Field(
        ..., alias="entityType"
    )
    suggested_rule: SuggestedRule = Field(..., alias="suggestedRule")
    confidence: int = Field(..., ge=0, le=100)
    reasoning: str = ""
    examples: list[str] = Field(default_factory=list)


__all__ = ["InsightMetrics", "QualityInsight", "DataPattern", "SuggestedRule", "RuleSuggestion"]
