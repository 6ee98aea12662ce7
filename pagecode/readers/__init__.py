"""
Document readers for pagecode.

Currently supports PDF via PyMuPDF.
"""

from pagecode.readers.pdf_reader import (
    PageRasterizer,
    PDFDocument,
    is_pdf,
)

__all__ = [
    "PDFDocument",
    "PageRasterizer",
    "is_pdf",
]
