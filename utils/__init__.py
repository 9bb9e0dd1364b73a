"""Shared utilities: config, logger, image_utils."""

from utils.config import AppConfig, load_config
from utils.logger import get_logger, log_structured, setup_logging
from utils.image_utils import data_url_from_base64, decode_base64, encode_base64

__all__ = [
    "AppConfig",
    "load_config",
    "get_logger",
    "log_structured",
    "setup_logging",
    "encode_base64",
    "decode_base64",
    "data_url_from_base64",
]
