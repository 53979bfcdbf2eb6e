"""Grid field helpers: circle reservation, blurs, variance and roominess."""

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from .types import SPREAD4, Point

T = TypeVar("T")

CircleSetter = Callable[[NDArray[np.float64], NDArray[Any]], Any]


def circle_distances_squared(
    shape: tuple[int, int], center: tuple[float, float]
) -> NDArray[np.float64]:
    """Squared distance of every cell coordinate from a (x, y) center."""
    height, width = shape
    ys, xs = np.ogrid[0:height, 0:width]
    return (xs - center[0]) ** 2 + (ys - center[1]) ** 2


def reserve_circle_in_place(
    matrix: NDArray[Any],
    center: tuple[float, float],
    radius: float,
    value: Any,
    invert: bool = False,
) -> None:
    """Assign cells within (or, inverted, outside) a circle.

    Args:
        matrix: Array to modify, indexed [y, x].
        center: Circle center as (x, y) in cell coordinates.
        radius: Circle radius. Cells at exactly the radius are inside.
        value: Scalar to assign, or a callable taking (r_sq, old_values)
            and returning the new values for the selected cells.
        invert: Select cells outside the circle instead.
    """
    r_sq = circle_distances_squared(matrix.shape, center)
    selected = (r_sq <= radius * radius) != invert
    if not np.any(selected):
        return
    if callable(value):
        matrix[selected] = value(r_sq[selected], matrix[selected])
    else:
        matrix[selected] = value


def gaussian_kernel(radius: int, standard_deviation: float) -> NDArray[np.float32]:
    """1D Gaussian kernel of length 2 * radius + 1, normalized to sum to 1."""
    xs = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(xs * xs) / (2.0 * standard_deviation * standard_deviation))
    return (kernel / kernel.sum()).astype(np.float32)


def kernel_blur(field: NDArray[np.float32], kernel: NDArray[np.float32], axis: int) -> NDArray[np.float32]:
    """Apply a centered 1D kernel along one axis.

    Each output is the weighted sum of in-bounds samples divided by the
    number of in-bounds samples.
    """
    total = ndimage.correlate1d(field.astype(np.float64), kernel.astype(np.float64), axis=axis, mode="constant", cval=0.0)
    samples = ndimage.correlate1d(
        np.ones(field.shape, dtype=np.float64),
        np.ones(kernel.shape, dtype=np.float64),
        axis=axis,
        mode="constant",
        cval=0.0,
    )
    return (total / samples).astype(np.float32)


def gaussian_blur(field: NDArray[np.float32], radius: int) -> NDArray[np.float32]:
    """Separable Gaussian blur with standard deviation equal to the radius."""
    kernel = gaussian_kernel(radius, float(radius))
    blurred = kernel_blur(field, kernel, axis=1)
    return kernel_blur(blurred, kernel, axis=0)


def grid_variance(field: NDArray[np.float32], radius: int) -> NDArray[np.float32]:
    """Local population variance around grid corners.

    Output has shape (height + 1, width + 1). The sample window for corner
    (cx, cy) covers cells cx - radius .. cx + radius - 1 on each axis,
    clipped to the grid.
    """
    height, width = field.shape
    values = field.astype(np.float64)
    # Pad so that corner windows read zeros outside the grid, then count
    # only in-bounds samples.
    padded = np.zeros((height + 2 * radius, width + 2 * radius), dtype=np.float64)
    padded[radius:radius + height, radius:radius + width] = values
    inside = np.zeros_like(padded)
    inside[radius:radius + height, radius:radius + width] = 1.0

    def window_sum(array: NDArray[np.float64]) -> NDArray[np.float64]:
        summed = np.zeros((array.shape[0] + 1, array.shape[1] + 1))
        summed[1:, 1:] = array.cumsum(axis=0).cumsum(axis=1)
        span = 2 * radius
        return (
            summed[span:, span:]
            - summed[:-span, span:]
            - summed[span:, :-span]
            + summed[:-span, :-span]
        )

    samples = window_sum(inside)
    total = window_sum(padded)
    squares = window_sum(padded * padded)
    mean = total / samples
    variance = squares / samples - mean * mean
    return np.maximum(variance, 0.0).astype(np.float32)


def kernel_dilate_or_erode(
    mask: NDArray[np.bool_],
    kernel: NDArray[np.bool_],
    offset: Point,
    dilate: bool,
) -> NDArray[np.bool_]:
    """Morphological dilation (or erosion) with an arbitrary boolean kernel.

    A cell becomes `dilate` if any kernel cell, placed with `offset` at the
    cell, covers an in-bounds input cell equal to `dilate`. Output shape
    matches the input.
    """
    height, width = mask.shape
    kernel_height, kernel_width = kernel.shape
    ox, oy = offset
    target = mask == dilate
    hit = np.zeros_like(target)
    for ky in range(kernel_height):
        for kx in range(kernel_width):
            if not kernel[ky, kx]:
                continue
            dx = kx - ox
            dy = ky - oy
            # hit[y, x] |= target[y + dy, x + dx]
            src_y0, src_y1 = max(dy, 0), min(height + dy, height)
            src_x0, src_x1 = max(dx, 0), min(width + dx, width)
            if src_y0 >= src_y1 or src_x0 >= src_x1:
                continue
            hit[src_y0 - dy:src_y1 - dy, src_x0 - dx:src_x1 - dx] |= target[src_y0:src_y1, src_x0:src_x1]
    return np.where(hit, dilate, not dilate)


def calculate_roominess(mask: NDArray[np.bool_], roomy_edges: bool) -> NDArray[np.int32]:
    """Signed chessboard distance to the nearest boundary between true and false.

    Cells whose 3x3 neighbourhood is mixed score +1 (true) or -1 (false);
    cells further away score +/-(distance + 1). Cells at the map edge count
    as boundaries unless `roomy_edges` is set, in which case they are never
    seeds. A mask with no boundary at all scores +/-min(width, height).
    """
    height, width = mask.shape
    values = mask.astype(np.uint8)
    any_true = ndimage.maximum_filter(values, size=3, mode="constant", cval=0) > 0
    all_true = ndimage.minimum_filter(values, size=3, mode="constant", cval=1) > 0
    mixed = any_true & ~all_true

    edge = np.zeros_like(mask, dtype=bool)
    edge[0, :] = edge[-1, :] = True
    edge[:, 0] = edge[:, -1] = True

    if roomy_edges:
        seeds = mixed & ~edge
    else:
        seeds = mixed | edge

    sign = np.where(mask, 1, -1).astype(np.int32)
    if not np.any(seeds):
        min_span = min(width, height)
        return np.full(mask.shape, min_span if mask[0, 0] else -min_span, dtype=np.int32)

    distance = ndimage.distance_transform_cdt(~seeds, metric="chessboard")
    return (sign * (distance + 1)).astype(np.int32)


def flood_fill(
    size: Point,
    seeds: Iterable[tuple[Point, T, int]],
    filler: Callable[[Point, T, int], T | None],
    spread: Iterable[Point] = SPREAD4,
) -> None:
    """Layered generic flood fill.

    filler(xy, prop, direction) is called for each reached position and
    returns the value to propagate to neighbours, or None to stop. Calls
    arrive in non-decreasing distance from their seeds. Neighbours outside
    `size` are never visited; seeds are passed through as given.
    """
    width, height = size
    offsets = list(enumerate(spread))
    current = list(seeds)
    while current:
        following: list[tuple[Point, T, int]] = []
        for (x, y), prop, direction in current:
            new_prop = filler((x, y), prop, direction)
            if new_prop is None:
                continue
            for d, (dx, dy) in offsets:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and 0 <= ny < height:
                    following.append(((nx, ny), new_prop, d))
        current = following
