"""
PDF access using PyMuPDF (fitz).

Provides the two external capabilities the decode pipeline needs:
- PDFDocument: open a PDF, report its page count, hand out pages
- PageRasterizer: render a page to a grayscale numpy raster at a given DPI

Rasters are rendered on demand and never cached, so peak memory stays at
one or two page images regardless of document length.
"""

from __future__ import annotations

import logging
from pathlib import Path

import fitz  # PyMuPDF
import numpy as np

from pagecode.exceptions import (
    DocumentNotOpenError,
    DocumentOpenError,
    RasterizationError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

# PDF user space is 72 points per inch
PDF_POINTS_PER_INCH = 72.0


def is_pdf(path: str | Path) -> bool:
    """Check extension first, then the %PDF magic bytes."""
    path = Path(path)
    if path.suffix.lower() == ".pdf":
        return True

    try:
        with open(path, "rb") as f:
            return f.read(8).startswith(b"%PDF")
    except OSError:
        return False


class PDFDocument:
    """An open PDF whose pages can be rasterized.

    Usage:
        with PDFDocument.open("/path/to/scans.pdf") as doc:
            for index in range(doc.page_count):
                page = doc.get_page(index)
    """

    def __init__(self, path: Path, doc: fitz.Document) -> None:
        self.path = path
        self._doc: fitz.Document | None = doc

    @classmethod
    def open(cls, path: str | Path) -> PDFDocument:
        """Open a PDF file.

        Args:
            path: Path to PDF file.

        Returns:
            An open PDFDocument.

        Raises:
            FileNotFoundError: If file doesn't exist.
            UnsupportedFormatError: If file is not a PDF.
            DocumentOpenError: If PyMuPDF cannot open the file.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"PDF not found: {path}")

        if not is_pdf(path):
            raise UnsupportedFormatError(
                f"Format '{path.suffix or path.name}' is not supported. Supported: pdf"
            )

        try:
            doc = fitz.open(path)
        except Exception as e:
            raise DocumentOpenError(f"Failed to open PDF: {e}") from e

        logger.debug("Opened %s (%d pages)", path, len(doc))
        return cls(path, doc)

    @property
    def is_open(self) -> bool:
        """Whether the underlying PyMuPDF document is still open."""
        return self._doc is not None and not self._doc.is_closed

    @property
    def page_count(self) -> int:
        """Number of pages (0 once closed)."""
        return len(self._doc) if self.is_open else 0

    def get_page(self, index: int) -> fitz.Page:
        """Get a page by 0-based index.

        Raises:
            DocumentNotOpenError: If the document has been closed.
            IndexError: If index is out of range.
            RasterizationError: If PyMuPDF cannot load the page object.
        """
        if not self.is_open:
            raise DocumentNotOpenError(f"Document is closed: {self.path}")
        if not 0 <= index < len(self._doc):
            raise IndexError(f"Page index {index} out of range (0-{len(self._doc) - 1})")
        try:
            return self._doc.load_page(index)
        except Exception as e:
            raise RasterizationError(index + 1, f"cannot load page: {e}") from e

    def close(self) -> None:
        """Close the document. Safe to call more than once."""
        if self.is_open:
            self._doc.close()
            logger.debug("Closed %s", self.path)
        self._doc = None

    def __enter__(self) -> PDFDocument:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"PDFDocument({str(self.path)!r}, {state})"


class PageRasterizer:
    """Renders PyMuPDF pages to grayscale numpy rasters."""

    def render(self, page: fitz.Page, dpi: float) -> np.ndarray:
        """
        Render a page at the given resolution.

        Args:
            page: PyMuPDF page object.
            dpi: Target resolution in dots per inch.

        Returns:
            2-D uint8 array of shape (height, width).

        Raises:
            ValueError: If dpi is not positive.
            RasterizationError: If PyMuPDF fails to render the page.
        """
        if dpi <= 0:
            raise ValueError(f"dpi must be positive, got {dpi}")

        page_number = page.number + 1
        scale = dpi / PDF_POINTS_PER_INCH
        try:
            pix = page.get_pixmap(
                matrix=fitz.Matrix(scale, scale),
                colorspace=fitz.csGRAY,
                alpha=False,
            )
        except Exception as e:
            raise RasterizationError(page_number, str(e)) from e

        samples = np.frombuffer(pix.samples, dtype=np.uint8)
        # Rows may be padded beyond width * n
        raster = samples.reshape(pix.height, pix.stride)[:, : pix.width].copy()
        logger.debug(
            "Rendered page %d at %s DPI: %dx%d", page_number, dpi, pix.width, pix.height
        )
        return raster
