"""
Receipt extraction service: one batch of images -> ReceiptRecord list via one structured LLM call.
Uses ILLMProvider (injected). Validates the response shape and maps it positionally onto the batch.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

from pydantic import ValidationError as PydanticValidationError

from core.constants import (
    DEBIT_ACCOUNTS,
    MSG_EXTRACTION_FAILED,
    MSG_LENGTH_MISMATCH,
    MSG_MALFORMED_RESPONSE,
    MSG_QUOTA_EXCEEDED,
)
from core.exceptions import (
    ExtractionError,
    ExtractionFailedError,
    MalformedResponseError,
    QuotaExceededError,
    ResponseLengthMismatchError,
)
from core.interfaces import ILLMProvider, IReceiptExtractor
from core.models import NormalizedImage, ReceiptRecord
from core.schema import ExtractedReceiptSchema, ImageReceiptsSchema, build_response_schema
from extraction.response_parser import parse_model_json
from prompts import load_prompt

logger = logging.getLogger(__name__)

PROMPT_FILE = "receipt_extraction.txt"
_QUOTA_MARKERS = ("quota exceeded", "daily limit", "resource_exhausted")


def _millis() -> int:
    return int(time.time() * 1000)


def is_quota_error(err: BaseException) -> bool:
    """True if an arbitrary error's text says the API quota is exhausted."""
    text = str(err).lower()
    return any(marker in text for marker in _QUOTA_MARKERS)


def receipt_id(source_name: str, call_timestamp: int, index: int) -> str:
    return f"{source_name}-{call_timestamp}-{index}"


def _to_record(
    item: ExtractedReceiptSchema,
    image: NormalizedImage,
    call_timestamp: int,
    index: int,
) -> ReceiptRecord:
    return ReceiptRecord(
        id=receipt_id(image.source_name, call_timestamp, index),
        source_file_name=image.source_name,
        original_image=image.base64_data,
        store_name=item.store_name,
        date=item.date,
        total_amount=item.total_amount,
        tax_amount=item.tax_amount,
        tax_rate=item.tax_rate,
        invoice_number=item.invoice_number,
        suggested_debit_account=item.suggested_debit_account,
        suggested_description=item.suggested_description,
    )


class ReceiptExtractionService(IReceiptExtractor):
    """Extraction using injected LLM provider. No concrete LLM imports."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        *,
        debit_accounts: Sequence[str] = DEBIT_ACCOUNTS,
        model: str | None = None,
        clock: Callable[[], int] = _millis,
    ) -> None:
        self._llm = llm_provider
        self._model = model
        self._clock = clock
        self._prompt = load_prompt(PROMPT_FILE)
        self._schema = build_response_schema(debit_accounts)

    @property
    def response_schema(self) -> dict[str, Any]:
        return self._schema

    def extract(self, batch: Sequence[NormalizedImage]) -> list[ReceiptRecord]:
        if not batch:
            return []
        logger.info("Calling extraction model for %d image(s)", len(batch))
        try:
            kwargs: dict[str, Any] = {"model": self._model} if self._model else {}
            response = self._llm.generate_structured(self._prompt, batch, self._schema, **kwargs)
            call_timestamp = self._clock()
            logger.debug("Extraction response length: %s", len(response.text or ""))
            return self._map_response(response.text, batch, call_timestamp)
        except ExtractionError:
            raise
        except Exception as e:
            if is_quota_error(e):
                logger.warning("Extraction quota exhausted: %s", e)
                raise QuotaExceededError(MSG_QUOTA_EXCEEDED) from e
            logger.warning("Extraction failed: %s", e)
            raise ExtractionFailedError(MSG_EXTRACTION_FAILED) from e

    def _map_response(
        self,
        text: str,
        batch: Sequence[NormalizedImage],
        call_timestamp: int,
    ) -> list[ReceiptRecord]:
        data = parse_model_json(text)
        if not isinstance(data, list) or len(data) != len(batch):
            actual = len(data) if isinstance(data, list) else 0
            logger.error(
                "Mismatched response length. Expected %d, got %s",
                len(batch),
                actual if isinstance(data, list) else type(data).__name__,
            )
            raise ResponseLengthMismatchError(MSG_LENGTH_MISMATCH, expected=len(batch), actual=actual)

        records: list[ReceiptRecord] = []
        for image, entry in zip(batch, data):
            if entry is None:
                continue
            if not isinstance(entry, dict):
                logger.error("Entry for %s is %s, not an object", image.source_name, type(entry).__name__)
                raise MalformedResponseError(MSG_MALFORMED_RESPONSE)
            try:
                parsed = ImageReceiptsSchema.model_validate(entry)
            except PydanticValidationError as e:
                logger.error("Entry for %s failed validation: %s", image.source_name, e)
                raise MalformedResponseError(MSG_MALFORMED_RESPONSE) from e
            for j, item in enumerate(parsed.receipts):
                records.append(_to_record(item, image, call_timestamp, j))
        logger.info("Extracted %d receipt(s) from %d image(s)", len(records), len(batch))
        return records
