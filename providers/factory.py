"""Factory for creating LLM providers from config. No hardcoded model names."""

from __future__ import annotations

from core.interfaces import ILLMProvider
from providers.gemini_provider import GeminiProvider
from providers.openai_provider import OpenAIProvider


def create_provider(
    provider: str,
    *,
    base_url: str | None = None,
    api_key: str = "",
    model: str = "",
    timeout_sec: int = 120,
    max_tokens: int = 8192,
) -> ILLMProvider:
    """
    Create an LLM provider by name. All settings from config; easy to add new providers.
    """
    name = (provider or "gemini").strip().lower()
    if name == "gemini":
        return GeminiProvider(
            base_url=base_url or None,
            api_key=api_key,
            model=model or "gemini-2.5-flash",
            timeout_sec=timeout_sec,
            max_tokens=max_tokens,
        )
    if name == "openai":
        return OpenAIProvider(
            base_url=base_url or None,
            api_key=api_key,
            model=model or "gpt-4o-mini",
            timeout_sec=timeout_sec,
            max_tokens=max_tokens,
        )
    raise ValueError(f"Unknown LLM provider: {provider}. Use gemini or openai.")
