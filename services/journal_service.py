"""
Journal entry derivation: receipt record -> proposed journal entry with fixed fallbacks.
Implements IJournalEntryDeriver; no LLM dependency.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Sequence

from core.constants import CREDIT_ACCOUNT, DEBIT_ACCOUNTS, NO_DESCRIPTION, UNKNOWN_STORE
from core.interfaces import IJournalEntryDeriver
from core.models import JournalEntry, ReceiptRecord


class JournalEntryDeriver(IJournalEntryDeriver):
    """Best-guess entry per receipt: suggested values when valid, defaults otherwise."""

    def __init__(
        self,
        debit_accounts: Sequence[str] = DEBIT_ACCOUNTS,
        credit_account: str = CREDIT_ACCOUNT,
        today: Callable[[], date] = date.today,
    ) -> None:
        if not debit_accounts:
            raise ValueError("debit_accounts must not be empty")
        self._debit_accounts = tuple(debit_accounts)
        self._credit_account = credit_account
        self._today = today

    @property
    def default_debit_account(self) -> str:
        return self._debit_accounts[0]

    def debit_account_for(self, suggested: str | None) -> str:
        if suggested and suggested in self._debit_accounts:
            return suggested
        return self.default_debit_account

    def derive(self, record: ReceiptRecord) -> JournalEntry:
        return JournalEntry(
            id=record.id,
            transaction_date=record.date or self._today().isoformat(),
            debit_account=self.debit_account_for(record.suggested_debit_account),
            credit_account=self._credit_account,
            amount=record.total_amount or 0.0,
            description=record.suggested_description or record.store_name or NO_DESCRIPTION,
            store_name=record.store_name or UNKNOWN_STORE,
            invoice_number=record.invoice_number or None,
        )
