"""Pipeline services: normalization, extraction, journal derivation, export."""

from services.normalizer_service import ImageNormalizerService
from services.extraction_service import ReceiptExtractionService
from services.journal_service import JournalEntryDeriver
from services.export_service import YayoiCsvExporter

__all__ = [
    "ImageNormalizerService",
    "ReceiptExtractionService",
    "JournalEntryDeriver",
    "YayoiCsvExporter",
]
