"""Pipeline: session state, batch extraction, and run orchestration."""

from pipeline.session import ReviewSession
from pipeline.batch_processor import BatchProcessor, chunk
from pipeline.receipt_pipeline import ReceiptPipeline

__all__ = [
    "ReviewSession",
    "BatchProcessor",
    "ReceiptPipeline",
    "chunk",
]
