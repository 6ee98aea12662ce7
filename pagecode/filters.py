"""
Raster smoothing for the retry decode attempt.

A degraded page that fails to decode at the default resolution is
rendered again at a higher resolution and blurred with a uniform box
kernel. The blur closes small gaps and speckle inside the code modules
so the detector sees solid cells again.

The kernel footprint scales with the resolution ratio so the blur
covers roughly the same physical area on the page: a 3x3 kernel at
72 DPI becomes 5x5 at 200 DPI.
"""

from __future__ import annotations

import math

import cv2
import numpy as np

from pagecode.exceptions import ConfigurationError

# 3x3 footprint calibrated for a 72 DPI raster
DEFAULT_KERNEL_AREA = 9.0


def kernel_dimension(
    default_dpi: float,
    retry_dpi: float,
    base_area: float = DEFAULT_KERNEL_AREA,
) -> int:
    """
    Compute the side length of the box kernel for a retry raster.

    Args:
        default_dpi: Resolution of the first decode attempt.
        retry_dpi: Resolution of the retry attempt.
        base_area: Kernel area (k*k) at the default resolution.

    Returns:
        floor(sqrt(base_area * retry_dpi / default_dpi)), at least 1.

    Raises:
        ConfigurationError: If any argument is not positive.

    Example:
        >>> kernel_dimension(72, 200)
        5
    """
    if default_dpi <= 0 or retry_dpi <= 0:
        raise ConfigurationError(
            f"Resolutions must be positive, got default={default_dpi}, retry={retry_dpi}"
        )
    if base_area <= 0:
        raise ConfigurationError(f"base_area must be positive, got {base_area}")

    area = base_area * (retry_dpi / default_dpi)
    return max(1, int(math.floor(math.sqrt(area))))


def box_kernel(size: int) -> np.ndarray:
    """Uniform size x size kernel whose weights sum to 1."""
    if size < 1:
        raise ValueError(f"kernel size must be >= 1, got {size}")
    return np.full((size, size), 1.0 / (size * size), dtype=np.float32)


def smooth(raster: np.ndarray, kernel_size: int) -> np.ndarray:
    """
    Box-blur a grayscale raster, leaving the border untouched.

    The kernel origin is ``(kernel_size - 1) // 2``. A pixel is replaced by
    the window mean only when the whole window fits inside the raster;
    pixels nearer the edge are copied through unchanged. The input is
    never modified.

    Args:
        raster: 2-D grayscale array.
        kernel_size: Side length of the box kernel (1 = identity).

    Returns:
        New array with the same shape and dtype as ``raster``.
    """
    if raster.ndim != 2 or raster.size == 0:
        raise ValueError(f"Expected a non-empty 2-D raster, got shape {raster.shape}")
    if kernel_size < 1:
        raise ValueError(f"kernel_size must be >= 1, got {kernel_size}")

    result = raster.copy()
    height, width = raster.shape
    if kernel_size == 1 or kernel_size > height or kernel_size > width:
        return result

    origin = (kernel_size - 1) // 2
    filtered = cv2.filter2D(
        raster,
        -1,
        box_kernel(kernel_size),
        anchor=(origin, origin),
        borderType=cv2.BORDER_CONSTANT,
    )

    # Rows/cols where the full window lies inside the raster
    top, left = origin, origin
    bottom = height - (kernel_size - 1 - origin)
    right = width - (kernel_size - 1 - origin)
    result[top:bottom, left:right] = filtered[top:bottom, left:right]
    return result
