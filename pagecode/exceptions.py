"""
Exception classes for pagecode.

All pagecode exceptions inherit from PageCodeError,
making it easy to catch all library errors.

Per-page failures (RasterizationError, SymbolDecodeError) are
recoverable: the page decoder logs them and treats the attempt as a
miss. Everything else is surfaced to the caller.

Example:
    >>> try:
    ...     pipeline.export_results("results.docx")
    ... except pagecode.UnsupportedExportFormatError as e:
    ...     print(f"Cannot export: {e}")
    ... except pagecode.PageCodeError as e:
    ...     print(f"pagecode error: {e}")
"""


class PageCodeError(Exception):
    """
    Base exception for all pagecode errors.

    Catch this to handle any pagecode-specific error.
    """

    pass


class ConfigurationError(PageCodeError, ValueError):
    """
    Raised for invalid configuration.

    Example:
        >>> DecodeConfig(default_dpi=200, retry_dpi=72)
        ConfigurationError: retry_dpi must be greater than default_dpi
    """

    pass


class UnsupportedFormatError(PageCodeError):
    """Raised when the input document is not a PDF."""

    pass


class DocumentOpenError(PageCodeError):
    """Raised when a document exists but cannot be opened."""

    pass


class DocumentNotOpenError(PageCodeError):
    """
    Raised when a run is attempted without an open document.

    The run is not started and previous results are left untouched.
    """

    pass


class RunInProgressError(PageCodeError):
    """Raised when a run is started while another is still active."""

    pass


class RasterizationError(PageCodeError):
    """
    Raised when a page cannot be rendered to a raster.

    Recoverable: the page decoder downgrades it to a decode miss.
    """

    def __init__(self, page_number: int, message: str = "") -> None:
        self.page_number = page_number
        detail = f": {message}" if message else ""
        super().__init__(f"Failed to rasterize page {page_number}{detail}")


class SymbolDecodeError(PageCodeError):
    """
    Raised when the symbol decoder fails internally.

    Distinct from a plain miss (the decoder returning None). Recoverable
    in the same way as RasterizationError.
    """

    pass


class NoResultsToExportError(PageCodeError):
    """Raised when exporting with no decoded entries."""

    pass


class UnsupportedExportFormatError(PageCodeError):
    """
    Raised when the export path has an unsupported extension.

    Example:
        >>> pipeline.export_results("results.docx")
        UnsupportedExportFormatError: Format '.docx' is not supported. Supported: .txt, .csv
    """

    pass


class SinkWriteError(PageCodeError):
    """
    Raised when writing the results file fails.

    Lines already written are not rolled back; the export may be retried.
    """

    pass
