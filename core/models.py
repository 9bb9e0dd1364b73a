"""
Data models for the receipt journal pipeline.
Uses dataclasses for DTOs; Pydantic schemas for model output in core.schema.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

PDF_MIME_TYPE = "application/pdf"


class RunState(str, Enum):
    """Lifecycle of one pipeline run on a session."""

    IDLE = "idle"
    NORMALIZING = "normalizing"
    EXTRACTING = "extracting"
    SUCCESS = "success"
    ERROR = "error"
    EMPTY = "empty"

    @property
    def is_active(self) -> bool:
        return self in (RunState.NORMALIZING, RunState.EXTRACTING)


class UnsupportedFilePolicy(str, Enum):
    """What to do with files that are neither images nor PDFs."""

    IGNORE = "ignore"
    WARN = "warn"
    REJECT = "reject"


@dataclass(frozen=True)
class InputFile:
    """One uploaded file with its declared content type."""

    name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.content_type == PDF_MIME_TYPE

    @classmethod
    def from_path(cls, path: str | Path) -> InputFile:
        """Read a file from disk; content type is guessed from the file name."""
        p = Path(path)
        content_type, _ = mimetypes.guess_type(p.name)
        return cls(name=p.name, content_type=content_type or "", data=p.read_bytes())


@dataclass(frozen=True)
class NormalizedImage:
    """One image ready for extraction: an image file, or one PDF page."""

    base64_data: str = field(repr=False)
    source_name: str
    mime_type: str


@dataclass(frozen=True)
class ReceiptRecord:
    """Facts of one receipt found in one source image. Never mutated."""

    id: str
    source_file_name: str
    original_image: str = field(repr=False)
    store_name: str | None = None
    date: str | None = None
    total_amount: float | None = None
    tax_amount: float = 0.0
    tax_rate: float = 0.0
    invoice_number: str = ""
    suggested_debit_account: str | None = None
    suggested_description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Export for review output; the image payload is large and left out."""
        return {
            "id": self.id,
            "sourceFileName": self.source_file_name,
            "storeName": self.store_name,
            "date": self.date,
            "totalAmount": self.total_amount,
            "taxAmount": self.tax_amount,
            "taxRate": self.tax_rate,
            "invoiceNumber": self.invoice_number,
            "suggestedDebitAccount": self.suggested_debit_account,
            "suggestedDescription": self.suggested_description,
        }


@dataclass(frozen=True)
class JournalEntry:
    """Proposed journal line for one receipt. Edits replace the whole entry."""

    id: str
    transaction_date: str
    debit_account: str
    credit_account: str
    amount: float
    description: str
    store_name: str
    invoice_number: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transactionDate": self.transaction_date,
            "debitAccount": self.debit_account,
            "creditAccount": self.credit_account,
            "amount": self.amount,
            "description": self.description,
            "storeName": self.store_name,
            "invoiceNumber": self.invoice_number,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> JournalEntry:
        """Build from the camelCase dict produced by to_dict (e.g. an edits file)."""
        return cls(
            id=str(d["id"]),
            transaction_date=str(d.get("transactionDate") or ""),
            debit_account=str(d.get("debitAccount") or ""),
            credit_account=str(d.get("creditAccount") or ""),
            amount=float(d.get("amount") or 0),
            description=str(d.get("description") or ""),
            store_name=str(d.get("storeName") or ""),
            invoice_number=d.get("invoiceNumber") or None,
        )


@dataclass(frozen=True)
class LLMResponse:
    """Structured response from an LLM provider."""

    text: str
    model: str = ""
    finish_reason: str = ""
    usage: dict[str, int] = field(default_factory=dict)


@dataclass
class NormalizationResult:
    """Images produced from the input files, skipped files, and user-facing notices about them."""

    images: list[NormalizedImage] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)


@dataclass
class BatchMetrics:
    """Metrics collected during batch extraction."""

    total_images: int = 0
    total_batches: int = 0
    batches_processed: int = 0
    receipts_extracted: int = 0
    total_time_sec: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Export for logging/serialization."""
        return {
            "total_images": self.total_images,
            "total_batches": self.total_batches,
            "batches_processed": self.batches_processed,
            "receipts_extracted": self.receipts_extracted,
            "total_time_sec": round(self.total_time_sec, 4),
        }
