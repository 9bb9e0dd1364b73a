"""Google Gemini (Generative Language REST API) provider with native JSON schema output."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import requests

from core.models import LLMResponse, NormalizedImage
from providers.base import BaseLLMProvider, raise_for_quota

logger = logging.getLogger(__name__)
DEFAULT_GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"


def to_gemini_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Convert a JSON schema to Gemini's OpenAPI subset (upper-case type names)."""
    out: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            out[key] = value.upper()
        elif key == "properties" and isinstance(value, dict):
            out[key] = {name: to_gemini_schema(sub) for name, sub in value.items()}
        elif key == "items" and isinstance(value, dict):
            out[key] = to_gemini_schema(value)
        else:
            out[key] = value
    return out


class GeminiProvider(BaseLLMProvider):
    """Gemini generateContent with inline image parts and responseSchema."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        timeout_sec: int = 120,
        max_tokens: int = 8192,
    ) -> None:
        super().__init__(base_url or DEFAULT_GEMINI_BASE, api_key, model, timeout_sec, max_tokens)

    def _headers(self) -> dict[str, str]:
        h: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            h["x-goog-api-key"] = self._api_key
        return h

    def generate_structured(
        self,
        prompt: str,
        images: Sequence[NormalizedImage],
        response_schema: dict[str, Any],
        **kwargs: Any,
    ) -> LLMResponse:
        model = kwargs.get("model") or self._model
        url = f"{self._base_url}/models/{model}:generateContent"
        parts: list[dict[str, Any]] = [{"text": prompt}]
        parts.extend(
            {"inline_data": {"mime_type": img.mime_type, "data": img.base64_data}}
            for img in images
        )
        generation_config: dict[str, Any] = {
            "responseMimeType": "application/json",
            "responseSchema": to_gemini_schema(response_schema),
            "maxOutputTokens": kwargs.get("max_tokens", self._max_tokens),
        }
        if kwargs.get("temperature") is not None:
            generation_config["temperature"] = kwargs["temperature"]
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }
        resp = requests.post(url, json=payload, headers=self._headers(), timeout=self._timeout)
        raise_for_quota(resp, "gemini")
        resp.raise_for_status()
        data = resp.json()

        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason", "")
            logger.warning("Gemini returned no candidates (blockReason=%s)", block_reason or "none")
            return LLMResponse(text="", model=model, finish_reason=str(block_reason))
        candidate = candidates[0]
        text = "".join(
            p.get("text", "") for p in (candidate.get("content") or {}).get("parts") or []
        )
        meta = data.get("usageMetadata") or {}
        usage = {
            "prompt_tokens": int(meta.get("promptTokenCount", 0)),
            "completion_tokens": int(meta.get("candidatesTokenCount", 0)),
            "total_tokens": int(meta.get("totalTokenCount", 0)),
        }
        return LLMResponse(
            text=text.strip(),
            model=model,
            finish_reason=str(candidate.get("finishReason", "")),
            usage=usage,
        )
