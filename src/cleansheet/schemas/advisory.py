"""Request/response contract of the AI fix-suggestion oracle."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from cleansheet.schemas.models import Finding


class FixRequest(BaseModel):
    """Finding to fix, the row it points at, and the three collections as context."""

    finding: Finding
    current_data: dict[str, Any] = Field(default_factory=dict)
    clients: list[dict[str, Any]] = Field(default_factory=list)
    workers: list[dict[str, Any]] = Field(default_factory=list)
    tasks: list[dict[str, Any]] = Field(default_factory=list)


class FixSuggestion(BaseModel):
    model_config = {"populate_by_name": True}

    suggested_value: str = Field("", alias="suggestedValue")
    explanation: str = ""
    confidence: int = Field(0, ge=0, le=100)

    def is_low_confidence(self, threshold: int) -> bool:
        return self.confidence < threshold


__all__ = ["FixRequest", "FixSuggestion"]
