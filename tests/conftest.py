"""
Pytest configuration and fixtures for pagecode tests.

The fakes below stand in for PyMuPDF and OpenCV so pipeline behavior can
be tested deterministically:
- FakeDocument hands out page numbers as page handles.
- FakeRasterizer renders page N as a uniform raster filled with N whose
  side length grows with the DPI.
- FakeSymbolDecoder reads the page number back from the raster corner
  (a border pixel, so smoothing never changes it) and answers from
  per-resolution lookup tables.
"""

from __future__ import annotations

from pathlib import Path

import fitz
import numpy as np
import pytest

from pagecode.config import DecodeConfig
from pagecode.exceptions import RasterizationError, SymbolDecodeError
from pagecode.page_decoder import PageDecoder
from pagecode.pipeline import DocumentPipeline

DEFAULT_DPI = 72
RETRY_DPI = 200


def raster_side(dpi: float) -> int:
    return max(1, int(dpi) // 8)


class FakeDocument:
    """Document whose page handles are their 1-based page numbers."""

    def __init__(self, page_count: int, is_open: bool = True):
        self._page_count = page_count
        self.is_open = is_open
        self.requested: list[int] = []

    @property
    def page_count(self) -> int:
        return self._page_count

    def get_page(self, index: int) -> int:
        self.requested.append(index)
        return index + 1


class FakeRasterizer:
    """Renders page N as an N-filled square raster sized by DPI."""

    def __init__(self, fail_pages=(), fail_renders=()):
        self.fail_pages = set(fail_pages)  # every render of these pages fails
        self.fail_renders = set(fail_renders)  # (page, dpi) pairs that fail
        self.calls: list[tuple[int, float]] = []

    def render(self, page: int, dpi: float) -> np.ndarray:
        self.calls.append((page, dpi))
        if page in self.fail_pages or (page, dpi) in self.fail_renders:
            raise RasterizationError(page, "fake render failure")
        side = raster_side(dpi)
        return np.full((side, side), page, dtype=np.uint8)


class FakeSymbolDecoder:
    """Looks up decoded text by page number and raster resolution."""

    def __init__(self, default=None, retry=None, errors=(), on_decode=None):
        self.default = dict(default or {})  # page -> text at DEFAULT_DPI
        self.retry = dict(retry or {})  # page -> text at RETRY_DPI
        self.errors = set(errors)  # pages whose decode raises
        self.on_decode = on_decode  # optional callback(page)
        self.calls: list[tuple[int, tuple[int, int], bool]] = []

    def decode(self, raster: np.ndarray, *, try_harder: bool = True) -> str | None:
        page = int(raster[0, 0])
        self.calls.append((page, raster.shape, try_harder))
        if self.on_decode is not None:
            self.on_decode(page)
        if page in self.errors:
            raise SymbolDecodeError("fake decoder failure")
        if raster.shape[0] == raster_side(DEFAULT_DPI):
            return self.default.get(page)
        return self.retry.get(page)


@pytest.fixture
def config() -> DecodeConfig:
    """Default decode configuration."""
    return DecodeConfig(default_dpi=DEFAULT_DPI, retry_dpi=RETRY_DPI)


@pytest.fixture
def make_pipeline(config):
    """Build a DocumentPipeline over fake collaborators.

    Returns (pipeline, rasterizer, decoder).
    """

    def _make(default=None, retry=None, errors=(), fail_pages=(), fail_renders=(), on_decode=None):
        rasterizer = FakeRasterizer(fail_pages=fail_pages, fail_renders=fail_renders)
        decoder = FakeSymbolDecoder(default, retry, errors, on_decode)
        page_decoder = PageDecoder(rasterizer, decoder, config)
        return DocumentPipeline(config, page_decoder=page_decoder), rasterizer, decoder

    return _make


# =============================================================================
# REAL PDF FIXTURES
# =============================================================================


def qr_encoder_available() -> bool:
    """Check if this OpenCV build can generate QR codes."""
    import cv2

    return hasattr(cv2, "QRCodeEncoder")


def qr_png(text: str, size: int = 480) -> bytes:
    """Encode ``text`` as a QR code PNG with a quiet zone."""
    import cv2

    modules = cv2.QRCodeEncoder.create().encode(text)
    if modules.ndim == 3:
        modules = cv2.cvtColor(modules, cv2.COLOR_BGR2GRAY)
    modules = cv2.copyMakeBorder(modules, 4, 4, 4, 4, cv2.BORDER_CONSTANT, value=255)
    image = cv2.resize(modules, (size, size), interpolation=cv2.INTER_NEAREST)
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


def write_pdf(path: Path, texts: list[str | None], page_size: float = 300) -> Path:
    """Write a PDF with one page per entry; None makes a blank page."""
    doc = fitz.open()
    for text in texts:
        page = doc.new_page(width=page_size, height=page_size)
        if text is not None:
            margin = page_size * 0.1
            rect = fitz.Rect(margin, margin, page_size - margin, page_size - margin)
            page.insert_image(rect, stream=qr_png(text))
    doc.save(path)
    doc.close()
    return path


@pytest.fixture
def blank_pdf(tmp_path) -> Path:
    """Three blank pages."""
    return write_pdf(tmp_path / "blank.pdf", [None, None, None])
