"""
Symbol decoders: turn a grayscale raster into the text of its code.

The decode algorithm itself lives in OpenCV. This module adapts it to a
small protocol so the page decoder (and tests) can swap implementations:

    decode(raster, try_harder=True) -> str | None

``None`` is a normal miss. Internal decoder failures are raised as
SymbolDecodeError, which callers treat as a miss as well.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import cv2

from pagecode.exceptions import SymbolDecodeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    import numpy as np

logger = logging.getLogger(__name__)


class SymbolDecoder(Protocol):
    """Anything that can extract code text from a grayscale raster."""

    def decode(self, raster: np.ndarray, *, try_harder: bool = True) -> str | None: ...


class OpenCVQRDecoder:
    """
    QR code decoder backed by ``cv2.QRCodeDetector``.

    With ``try_harder`` the detector is also run on an Otsu-binarized copy
    and on an inverted copy of the raster before giving up. Scanned pages
    with uneven lighting or reversed contrast often decode only on one of
    those variants.

    Example:
        >>> decoder = OpenCVQRDecoder()
        >>> decoder.decode(raster)
        'INV-2014-0042'
    """

    def __init__(self) -> None:
        self._detector = cv2.QRCodeDetector()

    def decode(self, raster: np.ndarray, *, try_harder: bool = True) -> str | None:
        """
        Decode the first QR code found in ``raster``.

        Args:
            raster: 2-D uint8 grayscale array.
            try_harder: Also try binarized and inverted variants.

        Returns:
            Decoded text, or None if no code could be read.

        Raises:
            SymbolDecodeError: If OpenCV fails on the input.
        """
        candidates = self._variants(raster) if try_harder else iter([("original", raster)])
        for variant_name, candidate in candidates:
            text = self._detect(candidate)
            if text:
                logger.debug("Decoded QR code from %s raster", variant_name)
                return text
        return None

    def _detect(self, raster: np.ndarray) -> str | None:
        try:
            text, _points, _straight = self._detector.detectAndDecode(raster)
        except cv2.error as e:
            raise SymbolDecodeError(f"QR detection failed: {e}") from e
        return text or None

    def _variants(self, raster: np.ndarray) -> Iterator[tuple[str, np.ndarray]]:
        """Yield the raster and its preprocessed variants, lazily."""
        yield "original", raster
        try:
            _threshold, binary = cv2.threshold(raster, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        except cv2.error as e:
            raise SymbolDecodeError(f"Binarization failed: {e}") from e
        yield "binarized", binary
        try:
            inverted = cv2.bitwise_not(raster)
        except cv2.error as e:
            raise SymbolDecodeError(f"Inversion failed: {e}") from e
        yield "inverted", inverted
