"""
Image normalizer: input files -> ordered NormalizedImage list.
Images pass through unchanged (base64); PDFs are rendered page by page and re-encoded as JPEG.
Implements IImageNormalizer; fail-fast on the first file that cannot be rendered.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Sequence

from core.constants import (
    JPEG_QUALITY,
    MSG_PDF_FAILED,
    MSG_UNSUPPORTED_REJECTED,
    MSG_UNSUPPORTED_SKIPPED,
    PDF_SCALE,
)
from core.exceptions import FileProcessingError, UnsupportedFileError
from core.interfaces import IImageNormalizer
from core.models import (
    InputFile,
    NormalizationResult,
    NormalizedImage,
    UnsupportedFilePolicy,
)
from extraction.image_io import BytesImageWriter, PdfPageReader, detect_image_mime
from utils.image_utils import encode_base64

logger = logging.getLogger(__name__)


def pdf_page_name(file_name: str, page_number: int) -> str:
    """Display name of one PDF page (1-indexed)."""
    return f"{file_name}-p{page_number}"


def unique_source_name(name: str, taken: set[str]) -> str:
    """
    name itself, or "name (2)", "name (3)", ... when an earlier input already used it.
    Receipt ids are built from the source name, so two inputs must never share one.
    """
    candidate = name
    n = 1
    while candidate in taken:
        n += 1
        candidate = f"{name} ({n})"
    taken.add(candidate)
    return candidate


def _with_unique_names(images: list[NormalizedImage]) -> list[NormalizedImage]:
    taken: set[str] = set()
    out: list[NormalizedImage] = []
    for img in images:
        name = unique_source_name(img.source_name, taken)
        if name != img.source_name:
            logger.info("Duplicate source name %s renamed to %s", img.source_name, name)
            img = replace(img, source_name=name)
        out.append(img)
    return out


class ImageNormalizerService(IImageNormalizer):
    """Turn uploaded images and PDFs into NormalizedImage, preserving file and page order."""

    def __init__(
        self,
        *,
        pdf_scale: float = PDF_SCALE,
        jpeg_quality: int = JPEG_QUALITY,
        on_unsupported_file: UnsupportedFilePolicy = UnsupportedFilePolicy.IGNORE,
    ) -> None:
        self._pdf_scale = pdf_scale
        self._writer = BytesImageWriter(format="JPEG", quality=jpeg_quality)
        self._policy = on_unsupported_file

    def normalize(
        self,
        files: Sequence[InputFile],
        on_file: Callable[[InputFile], None] | None = None,
    ) -> NormalizationResult:
        result = NormalizationResult()
        for f in files:
            if on_file is not None:
                on_file(f)
            if f.is_image:
                result.images.append(self._from_image(f))
            elif f.is_pdf:
                result.images.extend(self._from_pdf(f))
            else:
                self._unsupported(f, result)
        result.images = _with_unique_names(result.images)
        logger.info(
            "Normalized %d file(s) into %d image(s); skipped %d",
            len(files),
            len(result.images),
            len(result.skipped_files),
        )
        return result

    def _from_image(self, f: InputFile) -> NormalizedImage:
        mime = detect_image_mime(f.data)
        if mime is None:
            logger.debug("Pillow could not identify %s; using declared type %s", f.name, f.content_type)
            mime = f.content_type
        return NormalizedImage(base64_data=encode_base64(f.data), source_name=f.name, mime_type=mime)

    def _from_pdf(self, f: InputFile) -> list[NormalizedImage]:
        try:
            pages = PdfPageReader(f.data, scale=self._pdf_scale).read()
            encoded = self._writer.write(pages)
        except Exception as e:
            logger.exception("PDF rendering failed for %s: %s", f.name, e)
            raise FileProcessingError(MSG_PDF_FAILED.format(name=f.name), file_name=f.name) from e
        logger.debug("Rendered %s: %d page(s)", f.name, len(encoded))
        return [
            NormalizedImage(
                base64_data=encode_base64(data),
                source_name=pdf_page_name(f.name, i),
                mime_type=self._writer.mime_type,
            )
            for i, data in enumerate(encoded, start=1)
        ]

    def _unsupported(self, f: InputFile, result: NormalizationResult) -> None:
        if self._policy is UnsupportedFilePolicy.REJECT:
            raise UnsupportedFileError(MSG_UNSUPPORTED_REJECTED.format(name=f.name), file_name=f.name)
        if self._policy is UnsupportedFilePolicy.WARN:
            logger.warning("Skipping unsupported file %s (type=%r)", f.name, f.content_type)
            result.notices.append(MSG_UNSUPPORTED_SKIPPED.format(name=f.name))
        else:
            logger.debug("Ignoring unsupported file %s (type=%r)", f.name, f.content_type)
        result.skipped_files.append(f.name)
