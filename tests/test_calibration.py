"""Tests for height calibration."""

import numpy as np
import pytest

from mapgen.calibration import array_quantile, calibrate_height, calibrate_height_in_place


class TestArrayQuantile:
    """Tests for interpolated quantiles."""

    def test_interpolates(self) -> None:
        """Quantiles between samples are interpolated."""
        values = np.array([0.0, 1.0, 2.0, 3.0], dtype=np.float32)
        assert array_quantile(values, 0.5) == pytest.approx(1.5)
        assert array_quantile(values, 1.0 / 3.0) == pytest.approx(1.0)

    def test_clamps(self) -> None:
        """Fractions outside [0, 1] clamp to the ends."""
        values = np.array([2.0, 5.0], dtype=np.float32)
        assert array_quantile(values, -1.0) == 2.0
        assert array_quantile(values, 2.0) == 5.0

    def test_empty_raises(self) -> None:
        """An empty array has no quantile."""
        with pytest.raises(ValueError):
            array_quantile(np.array([], dtype=np.float32), 0.5)


class TestCalibrateHeight:
    """Tests for calibration."""

    def test_fraction_above_zero(self) -> None:
        """Calibrating to 0 at 1 - x leaves a fraction x at or above 0."""
        field = np.arange(100, dtype=np.float32).reshape(10, 10)
        calibrate_height_in_place(field, 0.0, 0.75)
        assert np.count_nonzero(field >= 0.0) == 25

    def test_target_value(self) -> None:
        """The chosen quantile lands on the target."""
        field = np.array([[4.0, 8.0], [6.0, 2.0]], dtype=np.float32)
        calibrated = calibrate_height(field, 10.0, 0.0)
        assert float(calibrated.min()) == pytest.approx(10.0)
        assert calibrated.dtype == np.float32

    def test_fraction_zero_keeps_everything(self) -> None:
        """Fraction 0 puts the minimum on zero, so every cell qualifies."""
        rng = np.random.default_rng(8)
        field = rng.normal(size=(7, 7)).astype(np.float32)
        calibrate_height_in_place(field, 0.0, 0.0)
        assert (field >= 0.0).all()
