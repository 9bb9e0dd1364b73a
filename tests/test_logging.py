"""Unit tests for logging helpers and prompt loading."""
from __future__ import annotations

import io
import logging

import pytest

from prompts import load_prompt
from utils.logger import log_structured, setup_logging


def test_log_structured_renders_fields() -> None:
    stream = io.StringIO()
    setup_logging("DEBUG", stream=stream)
    log_structured(logging.getLogger("tests.logging"), logging.INFO, "Batch 1/2", trace_id="t-1", receipts=3)
    line = stream.getvalue().strip()
    assert "[INFO] tests.logging: Batch 1/2 [receipts=3 trace_id=t-1]" in line


def test_setup_logging_unknown_level_is_info() -> None:
    setup_logging("chatty", stream=io.StringIO())
    assert logging.getLogger().level == logging.INFO


def test_load_prompt() -> None:
    assert "receipts" in load_prompt("receipt_extraction.txt")
    with pytest.raises(FileNotFoundError):
        load_prompt("missing.txt")
