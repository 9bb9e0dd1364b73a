"""
Receipt pipeline: single public method run(files, session) -> RunState.
Does not know which LLM is used; all services injected via constructor.
Flow: normalize files -> batch extraction -> journal entries, reported through the session.

Run states: idle -> normalizing -> extracting -> {success | error | empty}.
"""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from core.constants import (
    MSG_EMPTY,
    MSG_EXTRACTING,
    MSG_PROCESSING_FILE,
    MSG_SUCCESS,
)
from core.exceptions import ReceiptProcessingError
from core.interfaces import IImageNormalizer
from core.models import InputFile, RunState
from pipeline.batch_processor import BatchProcessor
from pipeline.session import ReviewSession

logger = logging.getLogger(__name__)


class ReceiptPipeline:
    """
    Orchestrates one run against a ReviewSession. No global state; all deps injected.
    A session accepts one active run at a time (PipelineBusyError otherwise).
    """

    def __init__(
        self,
        normalizer: IImageNormalizer,
        batch_processor: BatchProcessor,
    ) -> None:
        self._normalizer = normalizer
        self._batches = batch_processor

    def run(self, files: Sequence[InputFile], session: ReviewSession) -> RunState:
        """
        Process files into the session. Returns the session state when the run ends;
        IDLE means the session was reset while the run was in flight.
        """
        token = session.begin_run()
        trace_id = str(uuid.uuid4())
        logger.info("Run %s started with %d file(s)", trace_id, len(files))

        def on_file(f: InputFile) -> None:
            session.set_status(MSG_PROCESSING_FILE.format(name=f.name), token)

        try:
            normalized = self._normalizer.normalize(files, on_file=on_file)
        except ReceiptProcessingError as e:
            return self._fail(session, token, trace_id, e)

        for notice in normalized.notices:
            session.add_notice(notice, token)

        if not normalized.images:
            session.complete_empty(MSG_EMPTY, token)
            logger.info("Run %s: nothing to process", trace_id)
            return session.state

        if not session.enter_extracting(token):
            return session.state
        session.set_status(MSG_EXTRACTING, token)
        try:
            metrics = self._batches.process(normalized.images, session, token, trace_id=trace_id)
        except ReceiptProcessingError as e:
            return self._fail(session, token, trace_id, e)

        if session.complete(MSG_SUCCESS.format(count=metrics.receipts_extracted), token):
            logger.info("Run %s complete: %s", trace_id, metrics.to_dict())
        return session.state

    @staticmethod
    def _fail(
        session: ReviewSession,
        token: int,
        trace_id: str,
        error: ReceiptProcessingError,
    ) -> RunState:
        if not error.trace_id:
            error.trace_id = trace_id
        logger.error("Run %s failed: %s (%s)", trace_id, error, type(error).__name__)
        session.fail(error, token)
        return session.state
