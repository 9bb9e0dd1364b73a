"""OpenAI (and Azure/OpenAI-compatible, e.g. Ollama) HTTP provider."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import requests

from core.models import LLMResponse, NormalizedImage
from extraction.response_parser import strip_code_fence
from providers.base import BaseLLMProvider, raise_for_quota
from utils.image_utils import data_url_from_base64

logger = logging.getLogger(__name__)
DEFAULT_OPENAI_BASE = "https://api.openai.com/v1"
# json_schema response formats must have an object at the top level
WRAPPER_KEY = "results"


def to_strict_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """
    Structured Outputs strict mode: every object lists all of its properties as required
    and allows no others. Returns a converted copy.
    """
    out: dict[str, Any] = dict(schema)
    props = schema.get("properties")
    if isinstance(props, dict):
        out["properties"] = {name: to_strict_schema(sub) for name, sub in props.items()}
        out["required"] = list(props)
        out["additionalProperties"] = False
    if isinstance(schema.get("items"), dict):
        out["items"] = to_strict_schema(schema["items"])
    return out


def _wrap_schema(schema: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    if schema.get("type") == "object":
        return schema, False
    return {"type": "object", "properties": {WRAPPER_KEY: schema}, "required": [WRAPPER_KEY]}, True


def _unwrap_text(text: str) -> str:
    """Return the JSON under WRAPPER_KEY; unparseable text is passed through for the caller to reject."""
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError:
        return text
    if isinstance(data, dict) and WRAPPER_KEY in data:
        return json.dumps(data[WRAPPER_KEY], ensure_ascii=False)
    return text


class OpenAIProvider(BaseLLMProvider):
    """OpenAI API and OpenAI-compatible endpoints (Azure, Ollama, etc.)."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        timeout_sec: int = 120,
        max_tokens: int = 8192,
    ) -> None:
        super().__init__(base_url or DEFAULT_OPENAI_BASE, api_key, model, timeout_sec, max_tokens)

    def _headers(self) -> dict[str, str]:
        h: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            h["Authorization"] = f"Bearer {self._api_key}"
        return h

    def generate_structured(
        self,
        prompt: str,
        images: Sequence[NormalizedImage],
        response_schema: dict[str, Any],
        **kwargs: Any,
    ) -> LLMResponse:
        model = kwargs.get("model") or self._model
        url = f"{self._base_url}/chat/completions"
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend(
            {"type": "image_url", "image_url": {"url": data_url_from_base64(img.base64_data, img.mime_type)}}
            for img in images
        )
        schema, wrapped = _wrap_schema(response_schema)
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": kwargs.get("max_tokens", self._max_tokens),
            "stream": False,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "receipt_extraction", "strict": True, "schema": to_strict_schema(schema)},
            },
        }
        if kwargs.get("temperature") is not None:
            payload["temperature"] = kwargs["temperature"]
        resp = requests.post(url, json=payload, headers=self._headers(), timeout=self._timeout)
        raise_for_quota(resp, "openai")
        resp.raise_for_status()
        data = resp.json()
        choice = data.get("choices", [{}])[0]
        text = ((choice.get("message") or {}).get("content") or "").strip()
        if wrapped:
            text = _unwrap_text(text)
        usage = {k: int(v) for k, v in (data.get("usage") or {}).items() if isinstance(v, int)}
        return LLMResponse(
            text=text,
            model=str(data.get("model") or model),
            finish_reason=str(choice.get("finish_reason") or ""),
            usage=usage,
        )
