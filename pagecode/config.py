"""
Configuration for pagecode decode runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pagecode.exceptions import ConfigurationError
from pagecode.filters import DEFAULT_KERNEL_AREA, kernel_dimension

DEFAULT_DPI = 72
RETRY_DPI = 200


@dataclass
class DecodeConfig:
    """
    Configuration for the per-page decode strategy.

    All options have sensible defaults. Create a config only
    if you need to customize behavior.

    Example:
        >>> config = DecodeConfig(retry_dpi=300, debug_dir=Path("debug"))
        >>> pipeline = pagecode.create_pipeline(config)
    """

    # Resolutions of the first attempt and the filtered retry
    default_dpi: int = DEFAULT_DPI
    retry_dpi: int = RETRY_DPI

    # Blur kernel area at default_dpi; scaled by retry_dpi / default_dpi
    base_kernel_area: float = DEFAULT_KERNEL_AREA

    # Ask the decoder to try its slower strategies before giving up
    try_harder: bool = True

    # Write rasters of unreadable pages here (None = disabled)
    debug_dir: Path | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.default_dpi <= 0:
            raise ConfigurationError(f"default_dpi must be positive, got {self.default_dpi}")
        if self.retry_dpi <= self.default_dpi:
            raise ConfigurationError(
                f"retry_dpi must be greater than default_dpi, "
                f"got retry_dpi={self.retry_dpi}, default_dpi={self.default_dpi}"
            )
        if self.base_kernel_area <= 0:
            raise ConfigurationError(
                f"base_kernel_area must be positive, got {self.base_kernel_area}"
            )
        if self.debug_dir is not None:
            self.debug_dir = Path(self.debug_dir)

    @property
    def kernel_size(self) -> int:
        """Side length of the blur kernel used on the retry raster."""
        return kernel_dimension(self.default_dpi, self.retry_dpi, self.base_kernel_area)
