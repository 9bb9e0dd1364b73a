"""
Pydantic schemas for model output, and the JSON schema sent with each extraction request.
Field names follow the camelCase wire format; Python attributes are snake_case.
"""
from __future__ import annotations

import re
from datetime import date as calendar_date
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------

# Start year minus one for each era, so that year N of the era is offset + N.
_ERA_OFFSETS = {
    "令和": 2018,
    "R": 2018,
    "平成": 1988,
    "H": 1988,
    "昭和": 1925,
    "S": 1925,
}

_ERA_DATE = re.compile(
    r"^(令和|平成|昭和|[RHS])\s*(元|\d{1,2})\s*[年./\-]\s*(\d{1,2})\s*[月./\-]\s*(\d{1,2})\s*日?$",
    re.IGNORECASE,
)
_WESTERN_DATE = re.compile(r"^(\d{4})\s*[年./\-]\s*(\d{1,2})\s*[月./\-]\s*(\d{1,2})\s*日?$")
_AMOUNT_NOISE = re.compile(r"[¥￥,，円\s]")
_PERCENT_SIGN = re.compile(r"[%％]")


def _iso_or_none(year: int, month: int, day: int) -> str | None:
    try:
        return calendar_date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_receipt_date(value: str) -> str:
    """
    Normalize a receipt date to YYYY-MM-DD.
    Accepts ISO dates, slash/dot separated dates, 年月日 notation and Japanese era dates
    (令和6年5月1日, R6.5.1). Anything else is returned stripped but unchanged.
    """
    s = (value or "").strip()
    if not s:
        return s
    m = _ERA_DATE.match(s)
    if m:
        era = m.group(1)
        offset = _ERA_OFFSETS.get(era) or _ERA_OFFSETS[era.upper()]
        era_year = 1 if m.group(2) == "元" else int(m.group(2))
        return _iso_or_none(offset + era_year, int(m.group(3)), int(m.group(4))) or s
    m = _WESTERN_DATE.match(s)
    if m:
        return _iso_or_none(int(m.group(1)), int(m.group(2)), int(m.group(3))) or s
    return s


def parse_amount(value: Any) -> float | None:
    """Parse an amount that may arrive as a number or a string like '¥1,200'. None if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _AMOUNT_NOISE.sub("", str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_tax_rate(value: Any) -> float | None:
    """Percentage as a number: 8, "8", "8%" and "８％" all give 8.0. None if unparseable."""
    if isinstance(value, str):
        value = _PERCENT_SIGN.sub("", value)
    return parse_amount(value)


# ---------------------------------------------------------------------------
# Extracted receipt (one receipt on one image)
# ---------------------------------------------------------------------------


class ExtractedReceiptSchema(BaseModel):
    """One receipt as returned by the extraction model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    store_name: str | None = Field(default=None, alias="storeName")
    date: str | None = None
    total_amount: float | None = Field(default=None, alias="totalAmount")
    tax_amount: float = Field(default=0.0, alias="taxAmount")
    tax_rate: float = Field(default=0.0, alias="taxRate")
    invoice_number: str = Field(default="", alias="invoiceNumber")
    suggested_debit_account: str | None = Field(default=None, alias="suggestedDebitAccount")
    suggested_description: str | None = Field(default=None, alias="suggestedDescription")

    @field_validator("store_name", "suggested_debit_account", "suggested_description", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = normalize_receipt_date(str(v))
        return s or None

    @field_validator("total_amount", mode="before")
    @classmethod
    def total_amount_number(cls, v: Any) -> float | None:
        return parse_amount(v)

    @field_validator("tax_amount", mode="before")
    @classmethod
    def zero_when_missing(cls, v: Any) -> float:
        parsed = parse_amount(v)
        return parsed if parsed is not None else 0.0

    @field_validator("tax_rate", mode="before")
    @classmethod
    def rate_percent(cls, v: Any) -> float:
        """8, "8" and "8%" all mean 8 percent; unparseable -> 0."""
        parsed = parse_tax_rate(v)
        return parsed if parsed is not None else 0.0

    @field_validator("invoice_number", mode="before")
    @classmethod
    def invoice_number_stripped(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""


class ImageReceiptsSchema(BaseModel):
    """Receipts found on one input image (possibly none)."""

    model_config = ConfigDict(extra="ignore")

    receipts: list[ExtractedReceiptSchema] = Field(default_factory=list)

    @field_validator("receipts", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ---------------------------------------------------------------------------
# Request schema (JSON Schema; providers convert to their own dialect)
# ---------------------------------------------------------------------------


def build_receipt_schema(debit_accounts: Sequence[str]) -> dict[str, Any]:
    """JSON schema for a single receipt; the debit account is restricted to the category set."""
    accounts = list(debit_accounts)
    return {
        "type": "object",
        "required": ["storeName", "date", "totalAmount", "suggestedDebitAccount", "suggestedDescription"],
        "properties": {
            "storeName": {"type": "string", "description": "店名"},
            "date": {
                "type": "string",
                "description": "レシートの日付 (YYYY-MM-DD形式)。和暦の場合は西暦に変換する。",
            },
            "totalAmount": {"type": "number", "description": "合計金額"},
            "taxAmount": {"type": "number", "description": "消費税額。見つからない場合は 0 とする。"},
            "taxRate": {
                "type": "number",
                "description": "消費税率。8%なら8、10%なら10と数値で返す。見つからない場合は0とする。",
            },
            "invoiceNumber": {
                "type": "string",
                "description": "インボイス登録番号 (Tで始まる13桁の英数字)。見つからない場合は空文字とする。",
            },
            "suggestedDebitAccount": {
                "type": "string",
                "description": (
                    "店名やレシートの内容から最も適切と思われる勘定科目を推測して、"
                    f"以下の選択肢から一つだけ選んでください: {', '.join(accounts)}"
                ),
                "enum": accounts,
            },
            "suggestedDescription": {
                "type": "string",
                "description": "取引内容の摘要。店名や購入品目から簡潔に作成してください。",
            },
        },
    }


def build_response_schema(debit_accounts: Sequence[str]) -> dict[str, Any]:
    """JSON schema for a whole batch: one entry per input image, in input order."""
    return {
        "type": "array",
        "description": "入力されたすべての画像に対するレシート情報の配列。入力画像の順番通りに結果を返すこと。",
        "items": {
            "type": "object",
            "description": "単一の入力画像から抽出された情報。",
            "properties": {
                "receipts": {
                    "type": "array",
                    "description": "この画像から見つかったレシートの配列。レシートが見つからない場合は空配列を返す。",
                    "items": build_receipt_schema(debit_accounts),
                }
            },
        },
    }
