"""Fractal noise synthesis for elevation, forest and ore patterns.

Noise is built from octaves of lattice gradient noise, each bilinearly
scaled up to the output grid and weighted by an amplitude function of its
wavelength. The symmetric variant renders one oversized pattern and samples
it once per rotation (and mirror) so the result shares the map's symmetry.
"""

import math
from collections.abc import Callable

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from .symmetry import Mirror, cos_snap, mirror_grid_square, sin_snap

AmplitudeFunction = Callable[[float], float]

_GRADIENT_WEIGHT = 0.25


def pink_amplitude(wavelength: float) -> float:
    """Amplitude proportional to wavelength (1/f noise)."""
    return wavelength


def clumpy_amplitude(clumpiness: float) -> AmplitudeFunction:
    """Amplitude function wavelength ** clumpiness.

    Higher clumpiness favours long wavelengths, giving larger patches.
    """

    def amplitude(wavelength: float) -> float:
        return wavelength ** clumpiness

    return amplitude


def perlin_noise(rng: np.random.Generator, span: int) -> NDArray[np.float32]:
    """Generate a span x span lattice of gradient noise.

    Each of the (span + 1)^2 lattice corners gets a random unit vector,
    drawn row by row, which contributes to the four cells it touches.

    Args:
        rng: Random number generator.
        span: Side length of the output.

    Returns:
        2D noise array of shape (span, span).
    """
    phases = math.tau * rng.random((span + 1, span + 1))
    vx = np.cos(phases)
    vy = np.sin(phases)
    d = _GRADIENT_WEIGHT

    noise = np.zeros((span, span), dtype=np.float64)
    noise += (-d * vx - d * vy)[1:, 1:]
    noise += (d * vx - d * vy)[1:, :span]
    noise += (-d * vx + d * vy)[:span, 1:]
    noise += (d * vx + d * vy)[:span, :span]
    return noise.astype(np.float32)


def interpolate(
    lattice: NDArray[np.float32], xs: NDArray[np.float64], ys: NDArray[np.float64]
) -> NDArray[np.float32]:
    """Bilinearly sample a lattice at fractional (x, y), clamping at edges."""
    coordinates = np.stack([ys, xs])
    return ndimage.map_coordinates(lattice, coordinates, order=1, mode="nearest").astype(np.float32)


def fractal_noise(
    rng: np.random.Generator,
    width: int,
    height: int,
    wavelength_scale: float,
    amplitude: AmplitudeFunction,
) -> NDArray[np.float32]:
    """Generate multi-octave fractal noise.

    Octave i has wavelength (2 ** i) * wavelength_scale, for
    int(log2(max(width, height))) octaves.

    Args:
        rng: Random number generator.
        width: Output width.
        height: Output height.
        wavelength_scale: Wavelength of the finest octave in tiles.
        amplitude: Weight of an octave given its wavelength.

    Returns:
        Unnormalized 2D noise array of shape (height, width).
    """
    span = max(width, height)
    octaves = int(math.log2(span)) if span > 0 else 0
    noise = np.zeros((height, width), dtype=np.float32)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)

    for i in range(octaves):
        wavelength = (1 << i) * wavelength_scale
        weight = amplitude(wavelength)
        sub_span = int(span / wavelength) + 2
        lattice = perlin_noise(rng, sub_span)

        # Offsets align to whole tiles
        offset_x = int(rng.random() * wavelength)
        offset_y = int(rng.random() * wavelength)
        noise += weight * interpolate(
            lattice, (offset_x + xs) / wavelength, (offset_y + ys) / wavelength
        )

    return noise


def symmetric_fractal_noise(
    rng: np.random.Generator,
    width: int,
    height: int,
    rotations: int,
    mirror: Mirror,
    wavelength_scale: float,
    amplitude: AmplitudeFunction,
) -> NDArray[np.float32]:
    """Generate fractal noise with rotational and mirror symmetry.

    A square pattern of side 2 * max(width, height) + 2 is rendered once.
    Every output cell averages the pattern over all rotations, sampled at the
    rotated offset from the map center scaled by sqrt(2). With a mirror, the
    result is summed with its own mirror image.

    Args:
        rng: Random number generator.
        width: Output width.
        height: Output height.
        rotations: Rotational symmetry order, at least 1.
        mirror: Mirror axis, or Mirror.NONE.
        wavelength_scale: Wavelength of the finest octave in tiles.
        amplitude: Weight of an octave given its wavelength.

    Returns:
        Unnormalized 2D noise array of shape (height, width).

    Raises:
        ValueError: If rotations is less than 1.
    """
    if rotations < 1:
        raise ValueError("rotations must be >= 1")

    template_span = max(width, height) * 2 + 2
    template = fractal_noise(rng, template_span, template_span, wavelength_scale, amplitude)
    template_center = template_span / 2.0

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    # Cell centers relative to the map center, in template space
    mid_x = (xs - (width - 1) / 2.0) * math.sqrt(2.0)
    mid_y = (ys - (height - 1) / 2.0) * math.sqrt(2.0)

    unmirrored = np.zeros((height, width), dtype=np.float32)
    for rotation in range(rotations):
        angle = rotation * math.tau / rotations
        cos_a = cos_snap(angle)
        sin_a = sin_snap(angle)
        tx = mid_x * cos_a - mid_y * sin_a + template_center
        ty = mid_x * sin_a + mid_y * cos_a + template_center
        unmirrored += interpolate(template, tx, ty) / rotations

    if mirror == Mirror.NONE:
        return unmirrored

    mirrored = np.empty_like(unmirrored)
    for y in range(height):
        for x in range(width):
            mx, my = mirror_grid_square(mirror, (x, y), (width, height))
            mirrored[y, x] = unmirrored[y, x] + unmirrored[my, mx]
    return mirrored
