"""LLM providers: abstract base and concrete implementations."""

from providers.base import BaseLLMProvider
from providers.gemini_provider import GeminiProvider
from providers.openai_provider import OpenAIProvider
from providers.factory import create_provider

__all__ = [
    "BaseLLMProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "create_provider",
]
