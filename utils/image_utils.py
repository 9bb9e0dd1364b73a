"""Base64 helpers for image payloads sent to vision APIs."""

from __future__ import annotations

import base64


def encode_base64(data: bytes) -> str:
    """Raw bytes -> ASCII base64 payload (no data URL header)."""
    return base64.b64encode(data).decode("ascii")


def decode_base64(payload: str) -> bytes:
    return base64.b64decode(payload)


def data_url_from_base64(payload: str, media_type: str = "image/jpeg") -> str:
    """Wrap an existing base64 payload as a data URL for vision APIs and previews."""
    return f"data:{media_type};base64,{payload}"
