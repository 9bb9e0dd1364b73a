"""
Unit tests for ReceiptExtractionService with a fake ILLMProvider.
Covers positional mapping, record ids, response validation and error classification.
"""
from __future__ import annotations

import json
from typing import Any, Sequence

import pytest

from core.constants import DEBIT_ACCOUNTS, MSG_EXTRACTION_FAILED, MSG_MALFORMED_RESPONSE, MSG_QUOTA_EXCEEDED
from core.exceptions import (
    ExtractionFailedError,
    MalformedResponseError,
    QuotaExceededError,
    ResponseLengthMismatchError,
)
from core.interfaces import ILLMProvider
from core.models import LLMResponse, NormalizedImage
from services.extraction_service import ReceiptExtractionService, is_quota_error

CALL_TS = 1700000000000


class FakeLLMProvider(ILLMProvider):
    """Returns a fixed text (or raises) and records every request."""

    def __init__(self, text: str = "[]", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def generate_structured(
        self,
        prompt: str,
        images: Sequence[NormalizedImage],
        response_schema: dict[str, Any],
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "images": list(images), "schema": response_schema, **kwargs})
        if self.error is not None:
            raise self.error
        return LLMResponse(text=self.text, model="fake")


def _images(*names: str) -> list[NormalizedImage]:
    return [NormalizedImage(base64_data=f"b64-{n}", source_name=n, mime_type="image/jpeg") for n in names]


def _receipt(store: str, amount: Any = 1000, **extra: Any) -> dict[str, Any]:
    d = {
        "storeName": store,
        "date": "2024-05-01",
        "totalAmount": amount,
        "suggestedDebitAccount": "会議費",
        "suggestedDescription": f"{store} 打合せ",
    }
    d.update(extra)
    return d


def _service(provider: ILLMProvider) -> ReceiptExtractionService:
    return ReceiptExtractionService(provider, clock=lambda: CALL_TS)


def test_receipts_are_attributed_to_their_image() -> None:
    """Two receipts on the first image, none on the second, one on the third."""
    response = [
        {"receipts": [_receipt("カフェA"), _receipt("書店B", amount="¥1,980", taxRate=10, invoiceNumber="T1234567890123")]},
        {"receipts": []},
        {"receipts": [_receipt("タクシー")]},
    ]
    provider = FakeLLMProvider(json.dumps(response, ensure_ascii=False))
    records = _service(provider).extract(_images("a.jpg", "b.jpg", "c.jpg"))

    assert [r.id for r in records] == [
        f"a.jpg-{CALL_TS}-0",
        f"a.jpg-{CALL_TS}-1",
        f"c.jpg-{CALL_TS}-0",
    ]
    assert [r.source_file_name for r in records] == ["a.jpg", "a.jpg", "c.jpg"]
    assert records[0].original_image == "b64-a.jpg"
    assert records[1].total_amount == 1980.0
    assert records[1].tax_rate == 10.0
    assert records[1].invoice_number == "T1234567890123"
    assert records[2].store_name == "タクシー"


def test_request_carries_prompt_images_and_schema() -> None:
    provider = FakeLLMProvider(json.dumps([{"receipts": []}]))
    images = _images("a.jpg")
    _service(provider).extract(images)

    call = provider.calls[0]
    assert call["images"] == images
    assert "レシート" in call["prompt"]
    receipt = call["schema"]["items"]["properties"]["receipts"]["items"]
    assert receipt["properties"]["suggestedDebitAccount"]["enum"] == list(DEBIT_ACCOUNTS)


def test_empty_batch_does_not_call_model() -> None:
    provider = FakeLLMProvider()
    assert _service(provider).extract([]) == []
    assert provider.calls == []


def test_null_entry_means_no_receipts() -> None:
    provider = FakeLLMProvider(json.dumps([None, {"receipts": None}, {"receipts": [_receipt("店")]}]))
    records = _service(provider).extract(_images("a.jpg", "b.jpg", "c.jpg"))
    assert [r.source_file_name for r in records] == ["c.jpg"]


def test_code_fenced_response_is_accepted() -> None:
    text = "```json\n" + json.dumps([{"receipts": [_receipt("店")]}], ensure_ascii=False) + "\n```"
    records = _service(FakeLLMProvider(text)).extract(_images("a.jpg"))
    assert len(records) == 1


def test_length_mismatch_rejects_whole_batch() -> None:
    provider = FakeLLMProvider(json.dumps([{"receipts": []}] * 3))
    with pytest.raises(ResponseLengthMismatchError) as exc_info:
        _service(provider).extract(_images("a", "b", "c", "d"))
    assert exc_info.value.expected == 4
    assert exc_info.value.actual == 3


def test_non_array_response_is_length_mismatch() -> None:
    provider = FakeLLMProvider(json.dumps({"receipts": []}))
    with pytest.raises(ResponseLengthMismatchError):
        _service(provider).extract(_images("a"))


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not json at all",
        json.dumps(["oops"]),
        json.dumps([{"receipts": "none"}]),
    ],
)
def test_malformed_response(text: str) -> None:
    with pytest.raises(MalformedResponseError) as exc_info:
        _service(FakeLLMProvider(text)).extract(_images("a"))
    assert str(exc_info.value) == MSG_MALFORMED_RESPONSE


def test_quota_error_from_provider_message() -> None:
    provider = FakeLLMProvider(error=RuntimeError("429 RESOURCE_EXHAUSTED: Quota exceeded for requests per day"))
    with pytest.raises(QuotaExceededError) as exc_info:
        _service(provider).extract(_images("a"))
    assert str(exc_info.value) == MSG_QUOTA_EXCEEDED


def test_quota_error_raised_by_provider_passes_through() -> None:
    original = QuotaExceededError(MSG_QUOTA_EXCEEDED)
    with pytest.raises(QuotaExceededError) as exc_info:
        _service(FakeLLMProvider(error=original)).extract(_images("a"))
    assert exc_info.value is original


def test_other_failures_are_generic() -> None:
    boom = ConnectionError("connection reset")
    with pytest.raises(ExtractionFailedError) as exc_info:
        _service(FakeLLMProvider(error=boom)).extract(_images("a"))
    assert str(exc_info.value) == MSG_EXTRACTION_FAILED
    assert exc_info.value.__cause__ is boom


def test_is_quota_error() -> None:
    assert is_quota_error(Exception("You have reached the daily limit"))
    assert is_quota_error(Exception("resource_exhausted"))
    assert not is_quota_error(Exception("timeout"))
