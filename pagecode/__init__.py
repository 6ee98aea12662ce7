"""
pagecode: Decode one machine-readable code per page of a PDF.

Each page is rendered and passed to a QR decoder. Pages that fail are
rendered again at a higher resolution, smoothed with a box filter sized
to the resolution ratio, and decoded once more. Pages that still fail
are reported as unreadable instead of aborting the run.

Example:
    >>> import pagecode
    >>> pipeline = pagecode.create_pipeline()
    >>> pipeline.open("scans.pdf")
    >>> state = pipeline.run()
    >>> print(pipeline.summary())
    41 entries decoded; unreadable pages: 17
    >>> pipeline.add_manual_result("INV-0017")
    >>> pipeline.export_results("scans.csv")
"""

from pagecode.config import DecodeConfig
from pagecode.decoders import OpenCVQRDecoder, SymbolDecoder
from pagecode.exceptions import (
    ConfigurationError,
    DocumentNotOpenError,
    DocumentOpenError,
    NoResultsToExportError,
    PageCodeError,
    RasterizationError,
    RunInProgressError,
    SinkWriteError,
    SymbolDecodeError,
    UnsupportedExportFormatError,
    UnsupportedFormatError,
)
from pagecode.filters import box_kernel, kernel_dimension, smooth
from pagecode.page_decoder import DecodeOutcome, PageDecoder
from pagecode.pipeline import DocumentPipeline, RunState, create_pipeline
from pagecode.readers import PageRasterizer, PDFDocument
from pagecode.sinks import SUPPORTED_EXPORT_FORMATS, ResultsSink

__version__ = "0.1.0"
__all__ = [
    # Main API
    "create_pipeline",
    "DocumentPipeline",
    "RunState",
    # Configuration
    "DecodeConfig",
    # Per-page decoding
    "PageDecoder",
    "DecodeOutcome",
    "SymbolDecoder",
    "OpenCVQRDecoder",
    # Filtering
    "smooth",
    "box_kernel",
    "kernel_dimension",
    # Documents
    "PDFDocument",
    "PageRasterizer",
    # Output
    "ResultsSink",
    "SUPPORTED_EXPORT_FORMATS",
    # Exceptions
    "PageCodeError",
    "ConfigurationError",
    "UnsupportedFormatError",
    "DocumentOpenError",
    "DocumentNotOpenError",
    "RunInProgressError",
    "RasterizationError",
    "SymbolDecodeError",
    "NoResultsToExportError",
    "UnsupportedExportFormatError",
    "SinkWriteError",
]
