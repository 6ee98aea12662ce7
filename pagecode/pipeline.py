"""
Document pipeline: decode one code per page across a whole PDF.

The pipeline drives PageDecoder over every page in order and keeps the
run's bookkeeping in a RunState:
- decoded_texts: decoded strings in page order, plus manual entries
- unreadable_pages: 1-based numbers of pages that failed both attempts
- current_page: the page being processed, for progress polling

Runs can be synchronous (run) or on a background worker (start/wait).
Observers poll current_page / progress_percent() whenever they like; the
pipeline never pushes notifications. A run can be cancelled between
pages, leaving the results of the pages processed so far.

Example:
    >>> pipeline = create_pipeline()
    >>> pipeline.open("invoices.pdf")
    >>> state = pipeline.run()
    >>> state.decoded_texts
    ['INV-0001', 'INV-0002']
    >>> pipeline.export_results("invoices.csv")
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pagecode.config import DEFAULT_DPI, RETRY_DPI, DecodeConfig
from pagecode.decoders import OpenCVQRDecoder
from pagecode.exceptions import (
    DocumentNotOpenError,
    NoResultsToExportError,
    RasterizationError,
    RunInProgressError,
)
from pagecode.page_decoder import PageDecoder
from pagecode.readers.pdf_reader import PageRasterizer, PDFDocument
from pagecode.sinks import ResultsSink

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================


class Document(Protocol):
    """A paginated source the pipeline can iterate (PDFDocument or a stand-in)."""

    @property
    def is_open(self) -> bool: ...

    @property
    def page_count(self) -> int: ...

    def get_page(self, index: int) -> Any: ...


@dataclass
class RunState:
    """Aggregate state of the current or most recent run.

    Written only by the thread executing the run. ``current_page`` is a
    plain int replaced by a single store, so observers can read it from
    another thread without locking.
    """

    current_page: int = 0
    page_count: int = 0
    decoded_texts: list[str] = field(default_factory=list)
    unreadable_pages: list[int] = field(default_factory=list)
    retried_pages: int = 0
    cancelled: bool = False
    completed: bool = False
    processing_time_ms: float = 0.0

    def reset(self, page_count: int) -> None:
        """Clear all results for a new run."""
        self.decoded_texts.clear()
        self.unreadable_pages.clear()
        self.current_page = 0
        self.page_count = page_count
        self.retried_pages = 0
        self.cancelled = False
        self.completed = False
        self.processing_time_ms = 0.0


# =============================================================================
# DOCUMENT PIPELINE
# =============================================================================


class DocumentPipeline:
    """
    Runs the per-page decoder over every page of a document.

    One pipeline instance can be reused for many documents; each run
    clears the previous results first. Only one run may be active at a
    time.

    Attributes:
        config: Decode configuration shared with the page decoder.
        page_decoder: Per-page decode strategy.
        state: RunState of the current or most recent run.
    """

    def __init__(
        self,
        config: DecodeConfig | None = None,
        page_decoder: PageDecoder | None = None,
    ) -> None:
        self.config = config or DecodeConfig()
        if page_decoder is None:
            page_decoder = PageDecoder(PageRasterizer(), OpenCVQRDecoder(), self.config)
        self.page_decoder = page_decoder
        self.state = RunState()

        self._document: PDFDocument | None = None
        self._run_document: Document | None = None
        self._run_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._worker: threading.Thread | None = None
        self._worker_error: Exception | None = None

    # -------------------------------------------------------------------------
    # Document handling
    # -------------------------------------------------------------------------

    def open(self, path: str | Path) -> PDFDocument:
        """
        Open a PDF and hold it for subsequent runs.

        Any previously held document is closed first.

        Raises:
            RunInProgressError: If a run is active.
            FileNotFoundError, UnsupportedFormatError, DocumentOpenError:
                If the file cannot be opened.
        """
        if self.is_running:
            raise RunInProgressError("Cannot open a document while a run is active")
        self.close()
        self._document = PDFDocument.open(path)
        return self._document

    def close(self) -> None:
        """Close the held document, if any. Results are kept."""
        if self.is_running:
            raise RunInProgressError("Cannot close the document while a run is active")
        if self._document is not None:
            self._document.close()
            self._document = None

    @property
    def has_open_document(self) -> bool:
        return self._document is not None and self._document.is_open

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    def run(self, document: Document | None = None) -> RunState:
        """
        Decode every page of ``document`` (or the held document) in order.

        Args:
            document: Open document; defaults to the one from open().

        Returns:
            The pipeline's RunState.

        Raises:
            DocumentNotOpenError: If there is no open document. Previous
                results are left untouched.
            RunInProgressError: If another run is active.
        """
        document = self._begin(document)
        try:
            return self._process(document)
        finally:
            self._run_lock.release()

    def start(self, document: Document | None = None) -> None:
        """
        Start a run on a background worker thread and return immediately.

        Preconditions are checked here, in the caller's thread. Use
        wait() to block until the run finishes.
        """
        document = self._begin(document)
        self._worker_error = None
        self._worker = threading.Thread(
            target=self._work,
            args=(document,),
            name="pagecode-run",
            daemon=True,
        )
        try:
            self._worker.start()
        except RuntimeError:
            self._run_lock.release()
            raise

    def wait(self, timeout: float | None = None) -> RunState:
        """
        Wait for a background run to finish.

        Returns:
            The RunState (possibly still in progress if timeout expired).

        Raises:
            Exception: Any unexpected error that ended the worker.
        """
        if self._worker is not None:
            self._worker.join(timeout)
        if self._worker_error is not None:
            error, self._worker_error = self._worker_error, None
            raise error
        return self.state

    def cancel(self) -> None:
        """Ask the active run to stop at the next page boundary."""
        if self.is_running:
            logger.info("Cancellation requested at page %d", self.state.current_page)
        self._cancel_event.set()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def _begin(self, document: Document | None) -> Document:
        """Check preconditions and claim the run lock."""
        if document is None:
            document = self._document
        if document is None or not document.is_open:
            raise DocumentNotOpenError("No document open")

        if not self._run_lock.acquire(blocking=False):
            raise RunInProgressError("A run is already active on this pipeline")

        self._cancel_event.clear()
        self._run_document = document
        return document

    def _work(self, document: Document) -> None:
        try:
            self._process(document)
        except Exception as e:
            logger.exception("Decode run failed")
            self._worker_error = e
        finally:
            self._run_lock.release()

    def _process(self, document: Document) -> RunState:
        """Decode all pages; assumes the run lock is held."""
        start_time = time.time()
        state = self.state
        page_count = document.page_count
        state.reset(page_count)
        logger.info("Decoding %d pages", page_count)

        for index in range(page_count):
            if self._cancel_event.is_set():
                state.cancelled = True
                logger.info("Run cancelled after %d of %d pages", state.current_page, page_count)
                break

            page_number = index + 1
            # Published before decoding so observers see the page in progress
            state.current_page = page_number

            try:
                page = document.get_page(index)
            except RasterizationError as e:
                logger.warning("%s", e)
                state.unreadable_pages.append(page_number)
                continue

            outcome = self.page_decoder.decode_page(page, page_number)
            if outcome.is_decoded:
                state.decoded_texts.append(outcome.text)
            else:
                state.unreadable_pages.append(page_number)
            if outcome.attempts > 1:
                state.retried_pages += 1
        else:
            state.completed = True

        state.processing_time_ms = (time.time() - start_time) * 1000
        logger.info("%s (%.0f ms)", self.summary(), state.processing_time_ms)
        return state

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    @property
    def current_page(self) -> int:
        """1-based number of the page being processed (0 before the first)."""
        return self.state.current_page

    @property
    def page_count(self) -> int:
        """Page count of the running (or last run, or held) document."""
        document = self._run_document or self._document
        if document is not None and document.is_open:
            return document.page_count
        return self.state.page_count

    def progress_percent(self) -> int:
        """Percent complete, clamped to 100. 0 for an empty document."""
        page_count = self.page_count
        if page_count <= 0:
            return 0
        return min(100, (self.current_page * 100) // page_count)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    @property
    def decoded_texts(self) -> list[str]:
        return list(self.state.decoded_texts)

    @property
    def unreadable_pages(self) -> list[int]:
        return list(self.state.unreadable_pages)

    def add_manual_result(self, text: str) -> None:
        """Append an entry typed in by an operator, e.g. for an unreadable page.

        Raises:
            RunInProgressError: If a run is active; the worker owns the
                results until it finishes.
        """
        if self.is_running:
            raise RunInProgressError("Cannot add entries while a run is active")
        self.state.decoded_texts.append(text)
        logger.debug("Added manual entry (%d total)", len(self.state.decoded_texts))

    def summary(self) -> str:
        """One-line description of the results."""
        state = self.state
        text = f"{len(state.decoded_texts)} entries decoded; "
        if state.unreadable_pages:
            text += "unreadable pages: " + ", ".join(str(p) for p in state.unreadable_pages)
        else:
            text += "no unreadable pages"
        if state.cancelled:
            text += f" (cancelled after page {state.current_page} of {state.page_count})"
        return text

    def export_results(self, path: str | Path) -> Path:
        """
        Write decoded entries to a .txt or .csv file, one per line.

        Results are kept, so export can be repeated.

        Returns:
            Path written.

        Raises:
            NoResultsToExportError: If there are no decoded entries.
            UnsupportedExportFormatError: If the extension is not .txt/.csv.
            SinkWriteError: If writing fails.
        """
        if not self.state.decoded_texts:
            raise NoResultsToExportError("No results to export")

        sink = ResultsSink(path)
        sink.write(list(self.state.decoded_texts))
        return sink.path


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def create_pipeline(
    default_dpi: int = DEFAULT_DPI,
    retry_dpi: int = RETRY_DPI,
    debug_dir: Path | None = None,
) -> DocumentPipeline:
    """
    Create a pipeline backed by PyMuPDF rendering and OpenCV QR decoding.

    Args:
        default_dpi: Resolution of the first attempt.
        retry_dpi: Resolution of the filtered retry.
        debug_dir: Optional directory for rasters of unreadable pages.

    Returns:
        Configured DocumentPipeline instance.
    """
    config = DecodeConfig(default_dpi=default_dpi, retry_dpi=retry_dpi, debug_dir=debug_dir)
    return DocumentPipeline(config=config)
