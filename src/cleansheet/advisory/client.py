# src/cleansheet/advisory/client.py
"""
@brief
Async client for the generative-model advisory features.

@details
Three calls share one transport:
    - suggest_fix(): a replacement value for one finding (FixSuggestion).
    - enhance_insights(): extra QualityInsight entries appended to local ones.
    - enhance_suggestions(): extra RuleSuggestion entries appended to local ones.

The client is constructed from an AdvisoryConfig; it never reads the
environment. Validation never depends on it.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from cleansheet.advisory.prompts import (
    build_fix_prompt,
    build_insights_prompt,
    build_suggestions_prompt,
)
from cleansheet.errors import AdvisoryError, AdvisoryNotConfiguredError
from cleansheet.schemas.advisory import FixRequest, FixSuggestion
from cleansheet.schemas.insights import QualityInsight, RuleSuggestion
from cleansheet.schemas.models import AdvisoryConfig

logger = logging.getLogger(__name__)

_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

FALLBACK_EXPLANATION = "Unable to parse AI response. Please fix manually."


def parse_fix_response(text: str) -> FixSuggestion:
    """
    @brief
    Extract a FixSuggestion from free model text.

    @details
    Takes the outermost {...} block. A missing block, invalid JSON, an empty
    value/explanation or a non-numeric confidence yields the fallback
    suggestion (empty value, confidence 0). Confidence is clamped to 0-100.
    """
    match = _OBJECT_PATTERN.search(text or "")
    try:
        if match is None:
            raise ValueError("no JSON object in response")
        data = json.loads(match.group(0))
        value = data.get("suggestedValue")
        explanation = data.get("explanation")
        confidence = data.get("confidence")
        if not value or not explanation:
            raise ValueError("missing suggestedValue/explanation")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise ValueError("confidence is not a number")
    except (ValueError, AttributeError) as e:
        logger.warning("Unparseable fix suggestion (%s); raw=%r", e, text)
        return FixSuggestion(suggested_value="", explanation=FALLBACK_EXPLANATION, confidence=0)

    return FixSuggestion(
        suggested_value=str(value),
        explanation=str(explanation),
        confidence=int(max(0, min(100, round(confidence)))),
    )


def _parse_array(text: str) -> list[Any]:
    match = _ARRAY_PATTERN.search(text or "")
    if match is None:
        raise AdvisoryError("No JSON array in advisory response", source="advisory._parse_array")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AdvisoryError(
            f"Advisory array is not valid JSON: {e}", source="advisory._parse_array"
        ) from e
    if not isinstance(data, list):
        raise AdvisoryError("Advisory response is not a JSON array", source="advisory._parse_array")
    return data


class AdvisoryClient:
    """
    @brief
    Thin async wrapper over the `models/{model}:generateContent` endpoint.

    @details
    `transport` is forwarded to httpx.AsyncClient (tests pass a MockTransport).
    Every request is bounded by `timeout_seconds`; cancellation propagates to
    the caller unchanged.
    """

    def __init__(self, cfg: AdvisoryConfig, transport: httpx.AsyncBaseTransport | None = None):
        self._cfg = cfg
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._cfg.enabled and self._cfg.api_key)

    def _require_configured(self) -> None:
        if not self._cfg.enabled:
            raise AdvisoryNotConfiguredError(
                "AI advisory is disabled",
                source="AdvisoryClient",
                suggested_action="Set advisory.enabled: true in config.yaml.",
            )
        if not self._cfg.api_key:
            raise AdvisoryNotConfiguredError(
                "AI advisory API key not found",
                source="AdvisoryClient",
                suggested_action=f"Set advisory.api_key or the {self._cfg.api_key_env} environment variable.",
            )

    async def generate(self, prompt: str) -> str:
        """
        @brief
        Send one prompt and return the first candidate's text.

        @raises
            AdvisoryNotConfiguredError when disabled or keyless.
            AdvisoryError on transport failure, timeout, non-2xx status or an
            unexpected response shape.
        """
        self._require_configured()
        url = f"{self._cfg.base_url.rstrip('/')}/models/{self._cfg.model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        logger.debug("Advisory request: model=%s chars=%d", self._cfg.model, len(prompt))
        try:
            async with httpx.AsyncClient(
                timeout=self._cfg.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    url,
                    params={"key": self._cfg.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise AdvisoryError(
                f"Advisory request timed out after {self._cfg.timeout_seconds}s",
                source="AdvisoryClient.generate",
                suggested_action="Retry later or raise advisory.timeout_seconds.",
            ) from e
        except httpx.HTTPStatusError as e:
            raise AdvisoryError(
                f"API request failed: {e.response.status_code} {e.response.reason_phrase}",
                source="AdvisoryClient.generate",
                suggested_action="Check the API key and model name.",
            ) from e
        except httpx.HTTPError as e:
            raise AdvisoryError(
                f"Advisory request failed: {e}", source="AdvisoryClient.generate"
            ) from e
        except ValueError as e:
            raise AdvisoryError(
                "Advisory response is not JSON", source="AdvisoryClient.generate"
            ) from e

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise AdvisoryError(
                "Invalid response format from advisory API",
                source="AdvisoryClient.generate",
            ) from e
        logger.debug("Advisory response: chars=%d", len(text))
        return str(text)

    async def suggest_fix(self, request: FixRequest) -> FixSuggestion:
        prompt = build_fix_prompt(request, sample_rows=self._cfg.sample_rows)
        suggestion = parse_fix_response(await self.generate(prompt))
        logger.info(
            "Fix suggestion for %s/%s.%s: confidence=%d",
            request.finding.entity,
            request.finding.row_id,
            request.finding.field,
            suggestion.confidence,
        )
        return suggestion

    async def enhance_insights(
        self,
        insights: Sequence[QualityInsight],
        clients: Sequence[Any],
        workers: Sequence[Any],
        tasks: Sequence[Any],
    ) -> list[QualityInsight]:
        """Local insights plus model-proposed ones; local insights alone on any failure."""
        base = list(insights)
        if not self.configured:
            return base
        prompt = build_insights_prompt(base, clients, workers, tasks, self._cfg.sample_rows)
        try:
            extra = [QualityInsight.model_validate(item) for item in _parse_array(await self.generate(prompt))]
        except (AdvisoryError, ValidationError) as e:
            logger.warning("AI insight enhancement skipped: %s", e)
            return base
        return base + extra

    async def enhance_suggestions(
        self,
        suggestions: Sequence[RuleSuggestion],
        clients: Sequence[Any],
        workers: Sequence[Any],
        tasks: Sequence[Any],
    ) -> list[RuleSuggestion]:
        """Local suggestions plus model-proposed ones; local suggestions alone on any failure."""
        base = list(suggestions)
        if not self.configured:
            return base
        prompt = build_suggestions_prompt(base, clients, workers, tasks, self._cfg.sample_rows)
        try:
            extra = [
                RuleSuggestion.model_validate(item) for item in _parse_array(await self.generate(prompt))
            ]
        except (AdvisoryError, ValidationError) as e:
            logger.warning("AI suggestion enhancement skipped: %s", e)
            return base
        return base + extra


__all__ = ["AdvisoryClient", "parse_fix_response", "FALLBACK_EXPLANATION"]
