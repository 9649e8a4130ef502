"""Shared test fixtures and factories."""

import io
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from PIL import Image

from stockmeta.config import Settings
from stockmeta.core.models import SourceFile
from stockmeta.tasks.integrate import ModelClient

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of config.yaml and the environment."""
    return Settings()


# =============================================================================
# Timing
# =============================================================================


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


# =============================================================================
# File Factories
# =============================================================================


def _png_bytes(width: int, height: int, color: Any = (200, 30, 30), mode: str = "RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_png() -> Callable[..., SourceFile]:
    """Factory for in-memory PNG uploads."""

    def _make(filename: str = "image.png", width: int = 64, height: int = 48, **kwargs) -> SourceFile:
        return SourceFile(filename=filename, content=_png_bytes(width, height, **kwargs), mime_type="image/png")

    return _make


@pytest.fixture
def eps_source() -> SourceFile:
    content = (
        "%!PS-Adobe-3.0 EPSF-3.0\n"
        "%%Title: Company Logo\n"
        "%%Creator: Adobe Illustrator\n"
        "%%CreationDate: 2024-01-01\n"
        "%%BoundingBox: 0 0 400 300\n"
        "%%DocumentNeededResources: font Helvetica\n"
        "%%EndComments\n"
        "/Helvetica findfont 12 scalefont setfont\n"
        "0 0 1 setrgbcolor\n"
        "0.1 0.2 0.3 0.4 setcmykcolor\n"
        "newpath 0 0 moveto 100 100 lineto stroke\n"
        "%%EOF\n"
    ).encode("latin-1")
    return SourceFile(filename="logo-icon-set.eps", content=content, mime_type="application/postscript")


# =============================================================================
# Model API
# =============================================================================


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def model_reply() -> Callable[[Any], httpx.Response]:
    """Builds a generateContent response whose text is `payload` (JSON-encoded unless already a str)."""

    def _reply(payload: Any) -> httpx.Response:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        return httpx.Response(200, json=gemini_body(text))

    return _reply


@pytest.fixture
def make_client(settings: Settings) -> Callable[..., ModelClient]:
    """Factory for a ModelClient backed by an httpx.MockTransport handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], sleep: FakeSleep | None = None) -> ModelClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ModelClient(http_client, settings, sleep=sleep or FakeSleep())

    return _make
