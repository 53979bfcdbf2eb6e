"""Tests for fractal noise synthesis."""

import numpy as np
import pytest

from mapgen.noise import (
    clumpy_amplitude,
    fractal_noise,
    perlin_noise,
    pink_amplitude,
    symmetric_fractal_noise,
)
from mapgen.symmetry import Mirror


class TestAmplitudes:
    """Tests for octave amplitude functions."""

    def test_pink(self) -> None:
        """Pink noise weights octaves by wavelength."""
        assert pink_amplitude(4.0) == 4.0

    def test_clumpy(self) -> None:
        """Clumpiness is the wavelength exponent."""
        assert clumpy_amplitude(0.0)(8.0) == 1.0
        assert clumpy_amplitude(0.5)(16.0) == pytest.approx(4.0)


class TestPerlinNoise:
    """Tests for the lattice noise."""

    def test_output_shape(self) -> None:
        """Output is span x span."""
        result = perlin_noise(np.random.default_rng(1), 7)
        assert result.shape == (7, 7)
        assert result.dtype == np.float32

    def test_bounded(self) -> None:
        """Four unit contributions of weight 0.25 stay within +/-sqrt(2)."""
        result = perlin_noise(np.random.default_rng(2), 16)
        assert np.abs(result).max() <= np.sqrt(2.0) + 1e-5


class TestFractalNoise:
    """Tests for multi-octave noise."""

    def test_output_shape(self) -> None:
        """Output has (height, width) shape."""
        result = fractal_noise(np.random.default_rng(42), 20, 12, 0.5, pink_amplitude)
        assert result.shape == (12, 20)

    def test_deterministic_with_same_seed(self) -> None:
        """Same seed produces identical output."""
        result1 = fractal_noise(np.random.default_rng(9), 16, 16, 0.5, pink_amplitude)
        result2 = fractal_noise(np.random.default_rng(9), 16, 16, 0.5, pink_amplitude)
        np.testing.assert_array_equal(result1, result2)

    def test_different_seed_different_output(self) -> None:
        """Different seeds produce different output."""
        result1 = fractal_noise(np.random.default_rng(9), 16, 16, 0.5, pink_amplitude)
        result2 = fractal_noise(np.random.default_rng(10), 16, 16, 0.5, pink_amplitude)
        assert not np.allclose(result1, result2)


class TestSymmetricFractalNoise:
    """Tests for symmetric noise."""

    def test_output_shape(self) -> None:
        """Output has (height, width) shape."""
        rng = np.random.default_rng(4)
        result = symmetric_fractal_noise(rng, 14, 10, 2, Mirror.NONE, 0.5, pink_amplitude)
        assert result.shape == (10, 14)

    def test_half_turn_symmetry(self) -> None:
        """Two rotations make the field symmetric under a half turn."""
        rng = np.random.default_rng(5)
        result = symmetric_fractal_noise(rng, 16, 12, 2, Mirror.NONE, 0.5, pink_amplitude)
        np.testing.assert_allclose(result, result[::-1, ::-1], rtol=1e-5, atol=1e-5)

    def test_mirror_symmetry(self) -> None:
        """A left-right mirror makes columns match their mirror image."""
        rng = np.random.default_rng(6)
        result = symmetric_fractal_noise(rng, 12, 12, 1, Mirror.LEFT_MATCHES_RIGHT, 0.5, pink_amplitude)
        np.testing.assert_allclose(result, result[:, ::-1], rtol=1e-5, atol=1e-5)

    def test_invalid_rotations(self) -> None:
        """Rotations below 1 are rejected."""
        with pytest.raises(ValueError):
            symmetric_fractal_noise(np.random.default_rng(0), 8, 8, 0, Mirror.NONE, 0.5, pink_amplitude)

    def test_tiny_map(self) -> None:
        """A 1x1 map still gets a value."""
        result = symmetric_fractal_noise(np.random.default_rng(0), 1, 1, 2, Mirror.NONE, 0.2, pink_amplitude)
        assert result.shape == (1, 1)
