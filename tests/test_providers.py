"""
Unit tests for HTTP LLM providers with requests.post mocked.
Checks request payloads, quota detection and response parsing.
"""
from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from core.constants import DEBIT_ACCOUNTS
from core.exceptions import QuotaExceededError
from core.models import NormalizedImage
from core.schema import build_response_schema
from providers.factory import create_provider
from providers.gemini_provider import GeminiProvider, to_gemini_schema
from providers.openai_provider import OpenAIProvider, to_strict_schema

IMAGES = [
    NormalizedImage(base64_data="QUJD", source_name="a.png", mime_type="image/png"),
    NormalizedImage(base64_data="REVG", source_name="b.pdf-p1", mime_type="image/jpeg"),
]
SCHEMA = build_response_schema(DEBIT_ACCOUNTS)


def _response(status: int = 200, body: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body or {}
    return resp


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


def test_gemini_schema_types_are_upper_case() -> None:
    converted = to_gemini_schema(SCHEMA)
    assert converted["type"] == "ARRAY"
    receipt = converted["items"]["properties"]["receipts"]["items"]
    assert receipt["properties"]["totalAmount"]["type"] == "NUMBER"
    assert receipt["properties"]["suggestedDebitAccount"]["enum"] == list(DEBIT_ACCOUNTS)
    # Input is not mutated
    assert SCHEMA["type"] == "array"


def test_gemini_request_and_response() -> None:
    body = {
        "candidates": [{"content": {"parts": [{"text": '[{"receipts": []}, '}, {"text": '{"receipts": []}]'}]}, "finishReason": "STOP"}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15},
    }
    provider = GeminiProvider(api_key="k", model="gemini-2.5-flash")
    with patch("providers.gemini_provider.requests.post", return_value=_response(body=body)) as post:
        out = provider.generate_structured("prompt", IMAGES, SCHEMA)

    url = post.call_args.args[0]
    payload = post.call_args.kwargs["json"]
    assert url == "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
    assert post.call_args.kwargs["headers"]["x-goog-api-key"] == "k"
    parts = payload["contents"][0]["parts"]
    assert parts[0] == {"text": "prompt"}
    assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}
    assert parts[2]["inline_data"]["mime_type"] == "image/jpeg"
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert payload["generationConfig"]["responseSchema"]["type"] == "ARRAY"

    assert json.loads(out.text) == [{"receipts": []}, {"receipts": []}]
    assert out.finish_reason == "STOP"
    assert out.usage["total_tokens"] == 15


def test_gemini_quota_exhausted() -> None:
    resp = _response(429, {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}})
    with patch("providers.gemini_provider.requests.post", return_value=resp):
        with pytest.raises(QuotaExceededError):
            GeminiProvider(api_key="k").generate_structured("p", IMAGES, SCHEMA)
    resp.raise_for_status.assert_not_called()


def test_gemini_blocked_prompt_returns_empty_text() -> None:
    body = {"promptFeedback": {"blockReason": "SAFETY"}}
    with patch("providers.gemini_provider.requests.post", return_value=_response(body=body)):
        out = GeminiProvider(api_key="k").generate_structured("p", IMAGES, SCHEMA)
    assert out.text == ""
    assert out.finish_reason == "SAFETY"


# ---------------------------------------------------------------------------
# OpenAI-compatible
# ---------------------------------------------------------------------------


def test_openai_wraps_array_schema_and_unwraps_response() -> None:
    body = {
        "model": "gpt-4o-mini",
        "choices": [{"message": {"content": '{"results": [{"receipts": []}, {"receipts": []}]}'}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }
    provider = OpenAIProvider(base_url="http://localhost:11434/v1/", api_key="k", model="gpt-4o-mini")
    with patch("providers.openai_provider.requests.post", return_value=_response(body=body)) as post:
        out = provider.generate_structured("prompt", IMAGES, SCHEMA)

    assert post.call_args.args[0] == "http://localhost:11434/v1/chat/completions"
    assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer k"
    payload = post.call_args.kwargs["json"]
    content = payload["messages"][0]["content"]
    assert content[1]["image_url"]["url"] == "data:image/png;base64,QUJD"
    json_schema = payload["response_format"]["json_schema"]
    assert json_schema["strict"] is True
    schema = json_schema["schema"]
    assert schema["type"] == "object"
    assert schema["required"] == ["results"]
    assert schema["properties"]["results"]["type"] == "array"

    assert json.loads(out.text) == [{"receipts": []}, {"receipts": []}]
    assert out.usage["total_tokens"] == 5


def test_openai_rate_limited() -> None:
    with patch("providers.openai_provider.requests.post", return_value=_response(429, {"error": {"message": "Rate limit"}})):
        with pytest.raises(QuotaExceededError):
            OpenAIProvider(api_key="k").generate_structured("p", IMAGES, SCHEMA)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_factory() -> None:
    gemini = create_provider("gemini", api_key="k")
    assert isinstance(gemini, GeminiProvider)
    assert gemini.model == "gemini-2.5-flash"
    assert isinstance(create_provider("OpenAI", model="llava"), OpenAIProvider)
    with pytest.raises(ValueError):
        create_provider("anthropic")


def test_strict_schema_requires_every_property() -> None:
    strict = to_strict_schema(SCHEMA)
    image_entry = strict["items"]
    assert image_entry["required"] == ["receipts"]
    assert image_entry["additionalProperties"] is False
    receipt = image_entry["properties"]["receipts"]["items"]
    assert set(receipt["required"]) == set(receipt["properties"])
    assert "taxRate" in receipt["required"]
    assert receipt["additionalProperties"] is False
    assert receipt["properties"]["taxRate"]["type"] == "number"
    # Input is not mutated
    assert "additionalProperties" not in SCHEMA["items"]
