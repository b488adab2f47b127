# tests/advisory/test_client.py
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from cleansheet.advisory.client import FALLBACK_EXPLANATION, AdvisoryClient, parse_fix_response
from cleansheet.advisory.prompts import build_fix_prompt
from cleansheet.errors import AdvisoryError, AdvisoryNotConfiguredError
from cleansheet.schemas.advisory import FixRequest
from cleansheet.schemas.insights import QualityInsight
from cleansheet.schemas.models import AdvisoryConfig, Finding

# --------------------------
# Helpers
# --------------------------


def _cfg(**overrides) -> AdvisoryConfig:
    data = {"enabled": True, "api_key": "k-123", "base_url": "https://llm.test/v1beta/"}
    data.update(overrides)
    return AdvisoryConfig(**data)


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _transport(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


def _finding() -> Finding:
    return Finding(
        entity="tasks",
        row_id="T1",
        field="Duration",
        message="Duration must be a number",
        severity="error",
    )


def _insight(id_: str) -> QualityInsight:
    return QualityInsight(
        id=id_,
        type="missing",
        title="t",
        description="d",
        severity="info",
        impact="i",
        recommendation="r",
        metrics={"current": 1},
    )


# --------------------------
# parse_fix_response
# --------------------------


def test_parse_fix_response_extracts_embedded_object():
    text = 'Sure! {"suggestedValue": "3", "explanation": "numeric", "confidence": 91.6} done'

    suggestion = parse_fix_response(text)

    assert suggestion.suggested_value == "3"
    assert suggestion.explanation == "numeric"
    assert suggestion.confidence == 92


def test_parse_fix_response_clamps_confidence():
    assert parse_fix_response('{"suggestedValue": "x", "explanation": "y", "confidence": 250}').confidence == 100
    assert parse_fix_response('{"suggestedValue": "x", "explanation": "y", "confidence": -5}').confidence == 0


@pytest.mark.parametrize(
    "text",
    [
        "no json here",
        "{broken json",
        '{"suggestedValue": "", "explanation": "y", "confidence": 50}',
        '{"suggestedValue": "x", "confidence": 50}',
        '{"suggestedValue": "x", "explanation": "y", "confidence": "high"}',
        "",
    ],
)
def test_parse_fix_response_falls_back(text):
    suggestion = parse_fix_response(text)

    assert suggestion.suggested_value == ""
    assert suggestion.explanation == FALLBACK_EXPLANATION
    assert suggestion.confidence == 0


# --------------------------
# AdvisoryClient.generate
# --------------------------


def test_generate_posts_prompt_with_key():
    """
    @brief
    Request shape: model endpoint, key as query parameter, prompt in contents.
    """
    # --- Arrange ---
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_reply("hello"))

    client = AdvisoryClient(_cfg(model="m-1"), transport=_transport(handler))

    # --- Act ---
    text = asyncio.run(client.generate("ping"))

    # --- Assert ---
    assert text == "hello"
    assert seen["url"].path == "/v1beta/models/m-1:generateContent"
    assert seen["url"].params["key"] == "k-123"
    assert seen["body"] == {"contents": [{"parts": [{"text": "ping"}]}]}


def test_generate_requires_enabled_and_key():
    with pytest.raises(AdvisoryNotConfiguredError):
        asyncio.run(AdvisoryClient(_cfg(enabled=False)).generate("x"))
    with pytest.raises(AdvisoryNotConfiguredError) as e:
        asyncio.run(AdvisoryClient(_cfg(api_key=None)).generate("x"))
    assert "GEMINI_API_KEY" in str(e.value)


def test_generate_maps_http_status_to_advisory_error():
    client = AdvisoryClient(
        _cfg(), transport=_transport(lambda request: httpx.Response(403, json={"error": "nope"}))
    )

    with pytest.raises(AdvisoryError) as e:
        asyncio.run(client.generate("x"))

    assert "API request failed: 403 Forbidden" in str(e.value)


def test_generate_maps_timeout_to_advisory_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client = AdvisoryClient(_cfg(timeout_seconds=2), transport=_transport(handler))

    with pytest.raises(AdvisoryError) as e:
        asyncio.run(client.generate("x"))

    assert "timed out after 2.0s" in str(e.value)


def test_generate_maps_connection_error_to_advisory_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(AdvisoryError):
        asyncio.run(AdvisoryClient(_cfg(), transport=_transport(handler)).generate("x"))


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
def test_generate_rejects_bad_payloads(response):
    client = AdvisoryClient(_cfg(), transport=_transport(lambda request: response))

    with pytest.raises(AdvisoryError):
        asyncio.run(client.generate("x"))


# --------------------------
# High-level calls
# --------------------------


def test_suggest_fix_round_trip():
    # --- Arrange ---
    prompts: list[str] = []

    def handler(request):
        prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
        return httpx.Response(
            200, json=_reply('{"suggestedValue": "2", "explanation": "Use an integer", "confidence": 80}')
        )

    client = AdvisoryClient(_cfg(), transport=_transport(handler))
    request = FixRequest(finding=_finding(), current_data={"TaskID": "T1", "Duration": "two"})

    # --- Act ---
    suggestion = asyncio.run(client.suggest_fix(request))

    # --- Assert ---
    assert (suggestion.suggested_value, suggestion.confidence) == ("2", 80)
    assert "Field: Duration" in prompts[0]
    assert '"Duration": "two"' in prompts[0]


def test_enhance_insights_appends_model_entries():
    reply = json.dumps([_insight("ai-insight-1").model_dump(by_alias=True)])
    client = AdvisoryClient(
        _cfg(), transport=_transport(lambda request: httpx.Response(200, json=_reply(reply)))
    )

    result = asyncio.run(client.enhance_insights([_insight("local")], [], [], []))

    assert [i.id for i in result] == ["local", "ai-insight-1"]


@pytest.mark.parametrize(
    "reply",
    ["not an array", '[{"id": "half"}]'],
)
def test_enhance_insights_keeps_local_on_bad_reply(reply):
    client = AdvisoryClient(
        _cfg(), transport=_transport(lambda request: httpx.Response(200, json=_reply(reply)))
    )

    result = asyncio.run(client.enhance_insights([_insight("local")], [], [], []))

    assert [i.id for i in result] == ["local"]


def test_enhance_suggestions_without_configuration_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    client = AdvisoryClient(_cfg(enabled=False), transport=_transport(handler))

    assert asyncio.run(client.enhance_suggestions([], [], [], [])) == []
    assert client.configured is False


def test_fix_prompt_samples_rows():
    request = FixRequest(
        finding=_finding(),
        tasks=[{"TaskID": f"T{i}"} for i in range(5)],
    )

    prompt = build_fix_prompt(request, sample_rows=2)

    assert "TASKS (5 records)" in prompt
    assert '"T1"' in prompt
    assert '"T2"' not in prompt
