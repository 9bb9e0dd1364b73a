"""Core layer: interfaces, models, schemas, exceptions."""

from core.interfaces import (
    ILLMProvider,
    IImageNormalizer,
    IReceiptExtractor,
    IJournalEntryDeriver,
)
from core.models import (
    InputFile,
    NormalizedImage,
    ReceiptRecord,
    JournalEntry,
    LLMResponse,
    NormalizationResult,
    BatchMetrics,
    RunState,
    UnsupportedFilePolicy,
)
from core.exceptions import (
    ReceiptProcessingError,
    ConfigError,
    UnsupportedFileError,
    FileProcessingError,
    ExtractionError,
    QuotaExceededError,
    MalformedResponseError,
    ResponseLengthMismatchError,
    ExtractionFailedError,
    LedgerIntegrityError,
    EmptyExportError,
    JournalEntryNotFoundError,
    InvalidJournalEntryError,
    PipelineBusyError,
)

__all__ = [
    "ILLMProvider",
    "IImageNormalizer",
    "IReceiptExtractor",
    "IJournalEntryDeriver",
    "InputFile",
    "NormalizedImage",
    "ReceiptRecord",
    "JournalEntry",
    "LLMResponse",
    "NormalizationResult",
    "BatchMetrics",
    "RunState",
    "UnsupportedFilePolicy",
    "ReceiptProcessingError",
    "ConfigError",
    "UnsupportedFileError",
    "FileProcessingError",
    "ExtractionError",
    "QuotaExceededError",
    "MalformedResponseError",
    "ResponseLengthMismatchError",
    "ExtractionFailedError",
    "LedgerIntegrityError",
    "EmptyExportError",
    "JournalEntryNotFoundError",
    "InvalidJournalEntryError",
    "PipelineBusyError",
]
