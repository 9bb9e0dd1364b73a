"""Shared fixtures: tiny in-memory images and a config environment without side effects."""

from __future__ import annotations

import io

import pytest
from PIL import Image

CONFIG_ENV_VARS = (
    "LOG_LEVEL",
    "OUTPUT_DIR",
    "LLM_PROVIDER",
    "LLM_BASE_URL",
    "LLM_API_KEY",
    "GEMINI_API_KEY",
    "API_KEY",
    "LLM_MODEL",
    "BATCH_SIZE",
    "ON_UNSUPPORTED_FILE",
    "DEFAULT_TAX_RATE",
)


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color="white").save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """No config env vars and no .env loading."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("utils.config.load_dotenv", lambda *a, **k: False)
    return monkeypatch
