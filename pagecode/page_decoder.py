"""
Per-page decode strategy.

Each page gets at most two attempts:
1. Render at the default resolution and decode.
2. On a miss, render again at the retry resolution, box-blur the raster
   with a kernel scaled to the resolution ratio, and decode again.

Rendering and decoder failures count as misses for the attempt they
occur in. They are logged but never abort the document run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from PIL import Image

from pagecode.config import DecodeConfig
from pagecode.exceptions import ConfigurationError, RasterizationError, SymbolDecodeError
from pagecode.filters import kernel_dimension, smooth

if TYPE_CHECKING:
    import numpy as np

    from pagecode.decoders import SymbolDecoder

logger = logging.getLogger(__name__)


class Rasterizer(Protocol):
    """Anything that can render a page handle to a grayscale raster."""

    def render(self, page: Any, dpi: float) -> np.ndarray: ...


@dataclass(frozen=True)
class DecodeOutcome:
    """Result of decoding one page.

    ``text`` is None when the page stayed unreadable after every attempt.
    """

    page_number: int  # 1-based
    text: str | None
    attempts: int

    @classmethod
    def decoded(cls, page_number: int, text: str, attempts: int) -> DecodeOutcome:
        return cls(page_number=page_number, text=text, attempts=attempts)

    @classmethod
    def unreadable(cls, page_number: int, attempts: int = 2) -> DecodeOutcome:
        return cls(page_number=page_number, text=None, attempts=attempts)

    @property
    def is_decoded(self) -> bool:
        return self.text is not None


class PageDecoder:
    """
    Decodes the code on a single page with one filtered retry.

    Attributes:
        rasterizer: Renders page handles to grayscale rasters.
        symbol_decoder: Extracts code text from a raster.
        config: Resolutions, try-harder flag and debug output directory.

    Example:
        >>> from pagecode.decoders import OpenCVQRDecoder
        >>> from pagecode.readers import PageRasterizer
        >>> decoder = PageDecoder(PageRasterizer(), OpenCVQRDecoder())
        >>> outcome = decoder.decode_page(doc.get_page(0), page_number=1)
        >>> outcome.text
        'INV-2014-0042'
    """

    def __init__(
        self,
        rasterizer: Rasterizer,
        symbol_decoder: SymbolDecoder,
        config: DecodeConfig | None = None,
    ) -> None:
        self.rasterizer = rasterizer
        self.symbol_decoder = symbol_decoder
        self.config = config or DecodeConfig()

    def decode_page(
        self,
        page: Any,
        page_number: int,
        default_dpi: float | None = None,
        retry_dpi: float | None = None,
    ) -> DecodeOutcome:
        """
        Decode one page, retrying once on a filtered high-resolution raster.

        Args:
            page: Page handle understood by the rasterizer.
            page_number: 1-based page number, for logging and the outcome.
            default_dpi: First-attempt resolution (config default if None).
            retry_dpi: Retry resolution (config default if None).

        Returns:
            DecodeOutcome with the decoded text, or an unreadable outcome.

        Raises:
            ConfigurationError: If retry_dpi is not above default_dpi.
        """
        default_dpi = default_dpi if default_dpi is not None else self.config.default_dpi
        retry_dpi = retry_dpi if retry_dpi is not None else self.config.retry_dpi
        if retry_dpi <= default_dpi:
            raise ConfigurationError(
                f"retry_dpi ({retry_dpi}) must be greater than default_dpi ({default_dpi})"
            )

        raster = self._render(page, page_number, default_dpi)
        text = self._decode(raster, page_number)
        if text is not None:
            return DecodeOutcome.decoded(page_number, text, attempts=1)

        logger.debug(
            "Page %d: no code at %s DPI, retrying at %s DPI",
            page_number,
            default_dpi,
            retry_dpi,
        )
        # At most two rasters alive at once; the first is only kept for the debug dump
        if self.config.debug_dir is None:
            raster = None

        retry_raster = self._render(page, page_number, retry_dpi)
        filtered = None
        if retry_raster is not None:
            size = kernel_dimension(default_dpi, retry_dpi, self.config.base_kernel_area)
            filtered = smooth(retry_raster, size)
            del retry_raster

        text = self._decode(filtered, page_number)
        if text is not None:
            return DecodeOutcome.decoded(page_number, text, attempts=2)

        logger.info("Page %d: unreadable after retry", page_number)
        if self.config.debug_dir is not None:
            self._dump_rasters(page_number, raster, filtered)
        return DecodeOutcome.unreadable(page_number)

    def _render(self, page: Any, page_number: int, dpi: float) -> np.ndarray | None:
        try:
            return self.rasterizer.render(page, dpi)
        except RasterizationError as e:
            logger.warning("%s", e)
            return None

    def _decode(self, raster: np.ndarray | None, page_number: int) -> str | None:
        if raster is None:
            return None
        try:
            return self.symbol_decoder.decode(raster, try_harder=self.config.try_harder)
        except SymbolDecodeError as e:
            logger.warning("Page %d: decoder error: %s", page_number, e)
            return None

    def _dump_rasters(
        self,
        page_number: int,
        raster: np.ndarray | None,
        filtered: np.ndarray | None,
    ) -> None:
        """Save the rasters of an unreadable page for inspection."""
        debug_dir = self.config.debug_dir
        try:
            debug_dir.mkdir(parents=True, exist_ok=True)
            if raster is not None:
                Image.fromarray(raster).save(debug_dir / f"page{page_number}.png")
            if filtered is not None:
                Image.fromarray(filtered).save(debug_dir / f"page{page_number}_filter.png")
        except OSError as e:
            logger.warning("Page %d: could not write debug images: %s", page_number, e)
