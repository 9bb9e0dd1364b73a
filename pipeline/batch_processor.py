"""
Batch processor: ordered images -> fixed-size batches -> extraction -> journal entries.
Batches run strictly one after another; each batch is published to the session as soon
as it is extracted. The first failing batch stops the loop; earlier batches stay.
"""

from __future__ import annotations

import logging
import time
from typing import Sequence, TypeVar

from core.constants import BATCH_SIZE, MSG_BATCH_PROGRESS
from core.exceptions import ReceiptProcessingError
from core.interfaces import IJournalEntryDeriver, IReceiptExtractor
from core.models import BatchMetrics, NormalizedImage
from pipeline.session import ReviewSession
from utils.logger import log_structured

logger = logging.getLogger(__name__)
T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Contiguous chunks of at most size items, in order."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def batch_progress_message(batch_index: int, batch_size: int, total_batches: int, total_images: int) -> str:
    """Status line for the 0-based batch_index (rendered 1-based, with the image range)."""
    start = batch_index * batch_size + 1
    end = min((batch_index + 1) * batch_size, total_images)
    return MSG_BATCH_PROGRESS.format(
        batch=batch_index + 1,
        total_batches=total_batches,
        start=start,
        end=end,
        total_images=total_images,
    )


class BatchProcessor:
    """
    Drive extraction across all images. Injected extractor and deriver; no knowledge of
    the concrete LLM.
    """

    def __init__(
        self,
        extractor: IReceiptExtractor,
        deriver: IJournalEntryDeriver,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch size must be >= 1, got {batch_size}")
        self._extractor = extractor
        self._deriver = deriver
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def process(
        self,
        images: Sequence[NormalizedImage],
        session: ReviewSession,
        token: int,
        *,
        trace_id: str = "",
    ) -> BatchMetrics:
        """
        Extract every batch in order and append records + entries to the session.
        Raises the first ReceiptProcessingError; stops quietly if the session was reset.
        """
        batches = chunk(images, self._batch_size)
        metrics = BatchMetrics(total_images=len(images), total_batches=len(batches))
        start = time.perf_counter()
        for index, batch in enumerate(batches):
            if not session.is_current(token):
                logger.info("Session reset during run %s; abandoning remaining batches", trace_id)
                break
            session.set_status(
                batch_progress_message(index, self._batch_size, len(batches), len(images)),
                token,
            )
            try:
                records = self._extractor.extract(batch)
                entries = self._deriver.derive_all(records)
                if records and not session.append_batch(records, entries, token):
                    logger.info("Session reset during run %s; dropping batch %d", trace_id, index + 1)
                    break
            except ReceiptProcessingError as e:
                logger.error(
                    "Batch %d/%d failed (run %s): %s; %d receipt(s) kept from earlier batches",
                    index + 1,
                    len(batches),
                    trace_id,
                    e,
                    metrics.receipts_extracted,
                )
                raise
            metrics.batches_processed += 1
            metrics.receipts_extracted += len(records)
            log_structured(
                logger,
                logging.INFO,
                f"Batch {index + 1}/{len(batches)}: {len(records)} receipt(s) from {len(batch)} image(s)",
                trace_id=trace_id,
                batch_index=index + 1,
                receipts=len(records),
            )
        metrics.total_time_sec = time.perf_counter() - start
        return metrics
