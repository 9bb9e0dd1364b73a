"""
Abstract base for all LLM providers.
Pipeline depends only on this interface; no concrete provider imports in services.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

import requests

from core.constants import MSG_QUOTA_EXCEEDED
from core.exceptions import QuotaExceededError
from core.interfaces import ILLMProvider
from core.models import LLMResponse, NormalizedImage

logger = logging.getLogger(__name__)

QUOTA_STATUS_CODES = (429,)
QUOTA_STATUS_NAMES = ("RESOURCE_EXHAUSTED",)


def raise_for_quota(resp: requests.Response, provider: str) -> None:
    """Raise QuotaExceededError when the HTTP response reports rate/quota exhaustion."""
    status_name = ""
    if resp.status_code >= 400:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            status_name = str(body["error"].get("status") or "")
    if resp.status_code in QUOTA_STATUS_CODES or status_name in QUOTA_STATUS_NAMES:
        logger.warning("%s quota exhausted: HTTP %s %s", provider, resp.status_code, status_name)
        raise QuotaExceededError(MSG_QUOTA_EXCEEDED)


class BaseLLMProvider(ILLMProvider, ABC):
    """Abstract LLM provider. Implement generate_structured()."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model: str = "",
        timeout_sec: int = 120,
        max_tokens: int = 8192,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key or ""
        self._model = model
        self._timeout = timeout_sec
        self._max_tokens = max_tokens

    @property
    def model(self) -> str:
        return self._model

    @abstractmethod
    def generate_structured(
        self,
        prompt: str,
        images: Sequence[NormalizedImage],
        response_schema: dict[str, Any],
        **kwargs: Any,
    ) -> LLMResponse:
        """Send prompt + images with a JSON response schema. kwargs: model, max_tokens, temperature."""
        ...
