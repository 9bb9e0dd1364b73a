"""
CSV export in the Yayoi Kaikei import layout.
Every field quoted, CRLF line endings, UTF-8 with BOM. Output is a pure function of its inputs.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Mapping, Sequence

from core.constants import (
    CSV_HEADERS,
    DEFAULT_TAX_RATE,
    MSG_EMPTY_EXPORT,
    TAX_CATEGORY_OUT_OF_SCOPE,
)
from core.exceptions import EmptyExportError
from core.models import JournalEntry, ReceiptRecord

logger = logging.getLogger(__name__)

CSV_ENCODING = "utf-8-sig"


def format_number(value: float) -> str:
    """1200.0 -> '1200', 1200.5 -> '1200.5'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_tax_rate(rate: float | None, default_rate: float = DEFAULT_TAX_RATE) -> str:
    """Integer percentage string; a missing or zero rate uses the default."""
    effective = rate if rate else default_rate
    return f"{int(round(effective))}%"


class YayoiCsvExporter:
    """Serialize journal entries; tax rate is looked up on the originating receipt by id."""

    def __init__(
        self,
        *,
        default_tax_rate: float = DEFAULT_TAX_RATE,
        tax_category: str = TAX_CATEGORY_OUT_OF_SCOPE,
    ) -> None:
        self._default_tax_rate = default_tax_rate
        self._tax_category = tax_category

    def row(self, entry: JournalEntry, receipt: ReceiptRecord | None) -> list[str]:
        tax_rate = receipt.tax_rate if receipt is not None else None
        amount = format_number(entry.amount)
        return [
            entry.transaction_date.replace("-", "/"),
            entry.debit_account,
            "",
            entry.credit_account,
            "",
            self._tax_category,
            self._tax_category,
            amount,
            amount,
            f"{entry.store_name} / {entry.description}",
            format_tax_rate(tax_rate, self._default_tax_rate),
            "1" if entry.invoice_number else "0",
        ]

    def export(
        self,
        entries: Sequence[JournalEntry],
        receipts_by_id: Mapping[str, ReceiptRecord],
    ) -> bytes:
        """Return the CSV file content. Raises EmptyExportError when there is nothing to export."""
        if not entries:
            raise EmptyExportError(MSG_EMPTY_EXPORT)
        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
        writer.writerow(CSV_HEADERS)
        for entry in entries:
            receipt = receipts_by_id.get(entry.id)
            if receipt is None:
                logger.warning("No receipt for entry %s; using default tax rate", entry.id)
            writer.writerow(self.row(entry, receipt))
        return buf.getvalue().encode(CSV_ENCODING)

    def write(
        self,
        path: str | Path,
        entries: Sequence[JournalEntry],
        receipts_by_id: Mapping[str, ReceiptRecord],
    ) -> Path:
        content = self.export(entries, receipts_by_id)
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(content)
        logger.info("Saved %d journal entr%s to %s", len(entries), "y" if len(entries) == 1 else "ies", out)
        return out
