"""Extraction helpers: rasterizing inputs and parsing model responses."""

from extraction.image_io import (
    IImageReader,
    IImageWriter,
    PdfPageReader,
    BytesImageWriter,
    detect_image_mime,
)
from extraction.response_parser import parse_model_json, strip_code_fence

__all__ = [
    "IImageReader",
    "IImageWriter",
    "PdfPageReader",
    "BytesImageWriter",
    "detect_image_mime",
    "parse_model_json",
    "strip_code_fence",
]
