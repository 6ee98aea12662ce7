"""Tests for raster smoothing and kernel sizing."""

import numpy as np
import pytest

from pagecode.exceptions import ConfigurationError
from pagecode.filters import box_kernel, kernel_dimension, smooth


class TestKernelDimension:
    """Test the resolution-scaled kernel size."""

    def test_default_resolutions(self):
        """floor(sqrt(9 * 200 / 72)) == 5."""
        assert kernel_dimension(72, 200) == 5

    def test_equal_resolutions_give_base_kernel(self):
        """Same resolution keeps the 3x3 footprint."""
        assert kernel_dimension(72, 72) == 3

    def test_rounds_down(self):
        """Non-square areas are floored."""
        # 9 * 300 / 72 = 37.5 -> sqrt = 6.12
        assert kernel_dimension(72, 300) == 6

    def test_deterministic(self):
        """Same inputs always give the same size."""
        assert kernel_dimension(100, 400) == kernel_dimension(100, 400)

    def test_custom_base_area(self):
        """Base area scales the result."""
        assert kernel_dimension(72, 72, base_area=25.0) == 5

    def test_at_least_one(self):
        """Tiny ratios still give a usable kernel."""
        assert kernel_dimension(1000, 10) == 1

    @pytest.mark.parametrize("default, retry", [(0, 200), (72, 0), (-72, 200)])
    def test_rejects_non_positive_resolutions(self, default, retry):
        """Resolutions must be positive."""
        with pytest.raises(ConfigurationError):
            kernel_dimension(default, retry)


class TestBoxKernel:
    """Test kernel construction."""

    def test_uniform_weights(self):
        """All weights are 1/k^2."""
        kernel = box_kernel(5)
        assert kernel.shape == (5, 5)
        assert np.allclose(kernel, 1 / 25)

    def test_weights_sum_to_one(self):
        """Kernel preserves mean intensity."""
        assert box_kernel(3).sum() == pytest.approx(1.0)

    def test_rejects_zero(self):
        """Size must be >= 1."""
        with pytest.raises(ValueError):
            box_kernel(0)


class TestSmooth:
    """Test box blur with edge no-op policy."""

    @pytest.fixture
    def impulse(self):
        """7x7 zeros with a 225 impulse in the middle."""
        raster = np.zeros((7, 7), dtype=np.uint8)
        raster[3, 3] = 225
        return raster

    def test_kernel_one_is_identity(self):
        """kernel_size=1 returns an identical raster."""
        rng = np.random.default_rng(0)
        raster = rng.integers(0, 256, size=(12, 17), dtype=np.uint8)

        result = smooth(raster, 1)

        assert np.array_equal(result, raster)
        assert result is not raster

    def test_same_shape_and_dtype(self, impulse):
        """Output keeps dimensions and dtype."""
        result = smooth(impulse, 3)
        assert result.shape == impulse.shape
        assert result.dtype == impulse.dtype

    def test_impulse_spreads_over_window(self, impulse):
        """A 3x3 box spreads the impulse evenly over its neighbors."""
        result = smooth(impulse, 3)

        assert np.all(result[2:5, 2:5] == 25)
        assert result[1, 1] == 0
        assert result[5, 5] == 0

    def test_input_not_modified(self, impulse):
        """smooth() is pure."""
        original = impulse.copy()
        smooth(impulse, 3)
        assert np.array_equal(impulse, original)

    def test_border_passes_through(self):
        """Pixels within kernel_size/2 of the edge are unchanged."""
        raster = np.zeros((9, 9), dtype=np.uint8)
        raster[0, :] = 200
        raster[:, 0] = 100

        result = smooth(raster, 5)

        # 5x5 kernel: origin 2, so two rows/cols on each side are untouched
        assert np.array_equal(result[:2, :], raster[:2, :])
        assert np.array_equal(result[-2:, :], raster[-2:, :])
        assert np.array_equal(result[:, :2], raster[:, :2])
        assert np.array_equal(result[:, -2:], raster[:, -2:])

    def test_uniform_raster_unchanged(self):
        """Blurring a flat raster gives the same flat raster."""
        raster = np.full((20, 20), 128, dtype=np.uint8)
        assert np.array_equal(smooth(raster, 5), raster)

    def test_even_kernel(self):
        """Even kernels work and keep shape."""
        raster = np.zeros((8, 8), dtype=np.uint8)
        raster[4, 4] = 160

        result = smooth(raster, 4)

        assert result.shape == raster.shape
        # origin 1: window covers rows/cols 3..6 around (4, 4)
        assert result[4, 4] == 10
        assert result[3, 3] == 10
        # last row/cols outside interior (two on the far side) unchanged
        assert np.array_equal(result[-2:, :], raster[-2:, :])

    def test_raster_smaller_than_kernel(self):
        """Rasters smaller than the kernel pass through unchanged."""
        raster = np.arange(9, dtype=np.uint8).reshape(3, 3)
        assert np.array_equal(smooth(raster, 5), raster)

    def test_rejects_invalid_kernel(self, impulse):
        """kernel_size must be >= 1."""
        with pytest.raises(ValueError):
            smooth(impulse, 0)

    def test_rejects_non_2d(self):
        """Color or empty rasters are rejected."""
        with pytest.raises(ValueError):
            smooth(np.zeros((4, 4, 3), dtype=np.uint8), 3)
        with pytest.raises(ValueError):
            smooth(np.zeros((0, 4), dtype=np.uint8), 3)
