"""Logging setup for the CLI and tests; run and batch fields rendered as key=value."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# Third-party loggers that are noisy at INFO/DEBUG
QUIET_LOGGERS = ("urllib3", "PIL", "pdf2image")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """
    Configure the root logger (replaces any earlier handlers, so calling it again
    with a new level works). Unknown level names fall back to INFO.
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=stream or sys.stdout,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_structured(logger: logging.Logger, level: int, msg: str, **fields: Any) -> None:
    """
    Log msg followed by sorted key=value pairs; the same fields are attached to the
    record (extra) for handlers that aggregate them.
    """
    if fields:
        rendered = " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
        msg = f"{msg} [{rendered}]"
    logger.log(level, msg, extra=fields)
