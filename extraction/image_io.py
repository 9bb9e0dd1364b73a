"""
Image reader and writer strategies for the normalizer.
PDF pages are rendered with pdf2image (poppler); everything else goes through Pillow.
"""
from __future__ import annotations

import io
from abc import ABC, abstractmethod
from typing import Any

from pdf2image import convert_from_bytes
from PIL import Image, UnidentifiedImageError

# PDF user space is 72 units per inch; scale 1.0 renders at that resolution
PDF_BASE_DPI = 72


# ---------------------------------------------------------------------------
# Reader strategies
# ---------------------------------------------------------------------------


class IImageReader(ABC):
    """Strategy to read one or more images from a source."""

    @abstractmethod
    def read(self) -> list[Image.Image]:
        """Load images; caller must close or discard them. PDF -> multiple; image file -> single."""
        ...


class PdfPageReader(IImageReader):
    """Render every page of an in-memory PDF, in page order, at a scale relative to 72 DPI."""

    def __init__(self, data: bytes, *, scale: float = 2.0) -> None:
        self.data = data
        self.scale = scale

    @property
    def dpi(self) -> int:
        return int(round(PDF_BASE_DPI * self.scale))

    def read(self) -> list[Image.Image]:
        pages = convert_from_bytes(self.data, dpi=self.dpi)
        return [p.convert("RGB") if p.mode != "RGB" else p for p in pages]


def detect_image_mime(data: bytes) -> str | None:
    """MIME type from the image content (Pillow), or None when Pillow cannot identify it."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        return None
    if not fmt:
        return None
    return Image.MIME.get(fmt.upper())


# ---------------------------------------------------------------------------
# Writer strategies
# ---------------------------------------------------------------------------


class IImageWriter(ABC):
    """Strategy to write one or more images to a destination."""

    @abstractmethod
    def write(self, images: list[Image.Image], **kwargs: Any) -> Any:
        """Write images; return value is strategy-specific (e.g. path, bytes, key)."""
        ...


class BytesImageWriter(IImageWriter):
    """Write images to bytes (one bytes object per image, in order)."""

    def __init__(self, *, format: str = "JPEG", quality: int = 90) -> None:
        self.format = format
        self.quality = quality

    @property
    def mime_type(self) -> str:
        return Image.MIME.get(self.format.upper(), "image/jpeg")

    def write(self, images: list[Image.Image], **kwargs: Any) -> list[bytes]:
        fmt = kwargs.get("format", self.format)
        quality = kwargs.get("quality", self.quality)
        result: list[bytes] = []
        for img in images:
            buf = io.BytesIO()
            img.save(buf, format=fmt, quality=quality)
            result.append(buf.getvalue())
        return result
