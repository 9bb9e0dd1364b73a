"""
Review session: the single owner of run state, status/error channels, and the
receipt/journal collections. The pipeline writes to it with a run token; the CLI
(or any UI) reads it and applies user edits.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Mapping, Sequence

from core.constants import (
    DEBIT_ACCOUNTS,
    MSG_ENTRY_NOT_FOUND,
    MSG_ERROR_STATUS,
    MSG_INVALID_DEBIT_ACCOUNT,
    MSG_LEDGER_MISMATCH,
    MSG_RUN_ACTIVE,
    MSG_UNKNOWN_ERROR,
    NO_DESCRIPTION,
)
from core.exceptions import (
    InvalidJournalEntryError,
    JournalEntryNotFoundError,
    LedgerIntegrityError,
    PipelineBusyError,
)
from core.models import JournalEntry, ReceiptRecord, RunState
from services.export_service import YayoiCsvExporter

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[RunState, tuple[RunState, ...]] = {
    RunState.IDLE: (RunState.NORMALIZING,),
    RunState.NORMALIZING: (RunState.EXTRACTING, RunState.ERROR, RunState.EMPTY),
    RunState.EXTRACTING: (RunState.SUCCESS, RunState.ERROR),
    RunState.SUCCESS: (RunState.NORMALIZING,),
    RunState.ERROR: (RunState.NORMALIZING,),
    RunState.EMPTY: (RunState.NORMALIZING,),
}


class ReviewSession:
    """
    State for one user session. Collections are keyed by receipt id and only grow
    through append_batch(), which publishes records and entries together.
    """

    def __init__(
        self,
        debit_accounts: Sequence[str] = DEBIT_ACCOUNTS,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        self._debit_accounts = tuple(debit_accounts)
        self._on_status = on_status
        self._generation = 0
        self._state = RunState.IDLE
        self._status_message = ""
        self._error_message: str | None = None
        self._notices: list[str] = []
        self._receipts: dict[str, ReceiptRecord] = {}
        self._entries: dict[str, JournalEntry] = {}

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_processing(self) -> bool:
        return self._state.is_active

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def notices(self) -> tuple[str, ...]:
        return tuple(self._notices)

    @property
    def receipts(self) -> tuple[ReceiptRecord, ...]:
        return tuple(self._receipts.values())

    @property
    def journal_entries(self) -> tuple[JournalEntry, ...]:
        return tuple(self._entries.values())

    @property
    def receipts_by_id(self) -> Mapping[str, ReceiptRecord]:
        return MappingProxyType(self._receipts)

    def receipt(self, receipt_id: str) -> ReceiptRecord | None:
        return self._receipts.get(receipt_id)

    def journal_entry(self, entry_id: str) -> JournalEntry | None:
        return self._entries.get(entry_id)

    # ------------------------------------------------------------------
    # Pipeline side (token-guarded)
    # ------------------------------------------------------------------

    def is_current(self, token: int) -> bool:
        """False once reset() (or a newer run) has superseded the run holding this token."""
        return token == self._generation

    def begin_run(self) -> int:
        """Start a run: clear results and channels. Returns the run token."""
        if self.is_processing:
            raise PipelineBusyError(MSG_RUN_ACTIVE)
        self._generation += 1
        self._receipts = {}
        self._entries = {}
        self._notices = []
        self._error_message = None
        self._status_message = ""
        self._transition(RunState.NORMALIZING)
        return self._generation

    def set_status(self, message: str, token: int | None = None) -> None:
        if token is not None and not self.is_current(token):
            return
        self._status_message = message
        logger.debug("Status: %s", message)
        if self._on_status is not None:
            self._on_status(message)

    def add_notice(self, message: str, token: int) -> None:
        if self.is_current(token):
            self._notices.append(message)

    def enter_extracting(self, token: int) -> bool:
        if not self.is_current(token):
            return False
        self._transition(RunState.EXTRACTING)
        return True

    def append_batch(
        self,
        records: Sequence[ReceiptRecord],
        entries: Sequence[JournalEntry],
        token: int,
    ) -> bool:
        """
        Add one batch of records with their derived entries. Both id sets must be equal
        and new. Returns False (nothing added) when the token is stale.
        """
        if not self.is_current(token):
            return False
        record_ids = [r.id for r in records]
        entry_ids = [e.id for e in entries]
        if len(set(record_ids)) != len(record_ids) or sorted(record_ids) != sorted(entry_ids):
            logger.error("Record/entry id mismatch: records=%s entries=%s", record_ids, entry_ids)
            raise LedgerIntegrityError(MSG_LEDGER_MISMATCH)
        clash = self._receipts.keys() & set(record_ids)
        if clash:
            logger.error("Duplicate receipt ids: %s", sorted(clash))
            raise LedgerIntegrityError(MSG_LEDGER_MISMATCH)
        # Readers see either the old or the new collection, never a partial batch
        self._receipts = {**self._receipts, **{r.id: r for r in records}}
        self._entries = {**self._entries, **{e.id: e for e in entries}}
        return True

    def complete(self, message: str, token: int) -> bool:
        return self._finish(RunState.SUCCESS, message, token)

    def complete_empty(self, message: str, token: int) -> bool:
        return self._finish(RunState.EMPTY, message, token)

    def fail(self, error: BaseException, token: int) -> bool:
        """Record a run failure. Accumulated records and entries are kept."""
        if not self.is_current(token):
            return False
        self._error_message = str(error) or MSG_UNKNOWN_ERROR
        return self._finish(RunState.ERROR, MSG_ERROR_STATUS, token)

    def _finish(self, state: RunState, message: str, token: int) -> bool:
        if not self.is_current(token):
            return False
        self._transition(state)
        self.set_status(message)
        return True

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid run state transition {self._state.value} -> {new_state.value}")
        logger.debug("Run state %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    # ------------------------------------------------------------------
    # User side
    # ------------------------------------------------------------------

    def update_entry(self, entry: JournalEntry) -> JournalEntry:
        """Replace the entry with the same id (no merge, no re-derivation)."""
        if entry.id not in self._entries:
            raise JournalEntryNotFoundError(MSG_ENTRY_NOT_FOUND.format(entry_id=entry.id))
        if entry.debit_account not in self._debit_accounts:
            raise InvalidJournalEntryError(MSG_INVALID_DEBIT_ACCOUNT.format(account=entry.debit_account))
        if not entry.description:
            entry = replace(entry, description=NO_DESCRIPTION)
        self._entries = {**self._entries, entry.id: entry}
        logger.info("Journal entry %s updated", entry.id)
        return entry

    def reset(self) -> None:
        """Discard everything, including results of a run still in flight."""
        self._generation += 1
        self._state = RunState.IDLE
        self._status_message = ""
        self._error_message = None
        self._notices = []
        self._receipts = {}
        self._entries = {}
        logger.info("Session reset")

    def export_csv(self, exporter: YayoiCsvExporter) -> bytes:
        """CSV bytes for the current entries. Raises EmptyExportError when there are none."""
        return exporter.export(self.journal_entries, self._receipts)
