"""
Abstract interfaces for the receipt journal pipeline.
Every external dependency is behind an interface; the pipeline never imports a concrete LLM.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

from core.models import (
    InputFile,
    JournalEntry,
    LLMResponse,
    NormalizationResult,
    NormalizedImage,
    ReceiptRecord,
)


class ILLMProvider(ABC):
    """Abstract structured-extraction capability (prompt + images + schema -> JSON text)."""

    @abstractmethod
    def generate_structured(
        self,
        prompt: str,
        images: Sequence[NormalizedImage],
        response_schema: dict[str, Any],
        **kwargs: Any,
    ) -> LLMResponse:
        """
        One request with the prompt, the images in order, and a JSON response schema.
        Raises QuotaExceededError when the API reports quota/rate exhaustion.
        """
        ...


class IImageNormalizer(ABC):
    """Abstract normalizer: input files -> ordered NormalizedImage list."""

    @abstractmethod
    def normalize(
        self,
        files: Sequence[InputFile],
        on_file: Callable[[InputFile], None] | None = None,
    ) -> NormalizationResult:
        """
        Source names in the result are unique (later duplicates get a " (n)" suffix);
        skipped files the user should hear about are listed in result.notices.
        Raises FileProcessingError (fail fast) or UnsupportedFileError (reject policy).
        """
        ...


class IReceiptExtractor(ABC):
    """Abstract extraction: one batch of images -> receipt records (zero or more per image)."""

    @abstractmethod
    def extract(self, batch: Sequence[NormalizedImage]) -> list[ReceiptRecord]:
        """Raises an ExtractionError subclass on any failure; never returns partial batches."""
        ...


class IJournalEntryDeriver(ABC):
    """Abstract derivation: receipt record -> proposed journal entry."""

    @abstractmethod
    def derive(self, record: ReceiptRecord) -> JournalEntry:
        ...

    def derive_all(self, records: Sequence[ReceiptRecord]) -> list[JournalEntry]:
        return [self.derive(r) for r in records]
