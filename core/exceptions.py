"""Custom exceptions for the receipt journal pipeline. No generic Exception usage.

``str(exc)`` is always the user-facing message; log lines carry the detail.
"""

from __future__ import annotations


class ReceiptProcessingError(Exception):
    """Base exception for pipeline failures."""

    def __init__(self, message: str, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or ""
        super().__init__(message)


class ConfigError(ReceiptProcessingError):
    """Invalid or missing configuration."""

    pass


class UnsupportedFileError(ReceiptProcessingError):
    """File type is neither image nor PDF and the policy is 'reject'."""

    def __init__(self, message: str, file_name: str = "", trace_id: str | None = None) -> None:
        self.file_name = file_name
        super().__init__(message, trace_id)


class FileProcessingError(ReceiptProcessingError):
    """A file could not be turned into images (e.g. PDF rasterization failed)."""

    def __init__(self, message: str, file_name: str = "", trace_id: str | None = None) -> None:
        self.file_name = file_name
        super().__init__(message, trace_id)


class ExtractionError(ReceiptProcessingError):
    """Extraction capability failed or returned unusable data."""

    pass


class QuotaExceededError(ExtractionError):
    """Rate limit or daily quota of the extraction API is exhausted."""

    pass


class MalformedResponseError(ExtractionError):
    """Response could not be parsed as JSON or did not match the schema."""

    pass


class ResponseLengthMismatchError(ExtractionError):
    """Response array length differs from the number of images sent."""

    def __init__(self, message: str, expected: int = 0, actual: int = 0, trace_id: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message, trace_id)


class ExtractionFailedError(ExtractionError):
    """Any other extraction failure."""

    pass


class LedgerIntegrityError(ReceiptProcessingError):
    """Receipt record and journal entry ids are out of lockstep."""

    pass


class EmptyExportError(ReceiptProcessingError):
    """Export refused because there are no journal entries."""

    pass


class JournalEntryNotFoundError(ReceiptProcessingError):
    """Edit targets an entry id that does not exist."""

    pass


class InvalidJournalEntryError(ReceiptProcessingError):
    """Edited entry has values outside the allowed set."""

    pass


class PipelineBusyError(ReceiptProcessingError):
    """A run is already active on this session."""

    pass
