"""Rotational and mirror symmetry projection of points, cells and plans."""

import math
from enum import IntEnum
from typing import TYPE_CHECKING, Callable

import numpy as np
from numpy.typing import NDArray

from .types import Point

if TYPE_CHECKING:
    from .plans import EntityPlan

FloatPoint = tuple[float, float]

# Exact values for the angles produced by 1, 2, 3 and 4 rotations.
_SNAPPED_COS = {
    0.0: 1.0,
    math.tau * 0.25: 0.0,
    math.tau * 0.5: -1.0,
    math.tau * 0.75: 0.0,
    math.tau: 1.0,
    math.tau / 3.0: -0.5,
    math.tau * 2.0 / 3.0: -0.5,
}
_SNAPPED_SIN = {
    0.0: 0.0,
    math.tau * 0.25: 1.0,
    math.tau * 0.5: 0.0,
    math.tau * 0.75: -1.0,
    math.tau: 0.0,
    math.tau / 3.0: math.sqrt(3.0) / 2.0,
    math.tau * 2.0 / 3.0: -math.sqrt(3.0) / 2.0,
}


class Mirror(IntEnum):
    """Mirror axis applied after each rotation."""

    NONE = 0
    LEFT_MATCHES_RIGHT = 1
    TOP_LEFT_MATCHES_BOTTOM_RIGHT = 2
    TOP_MATCHES_BOTTOM = 3
    TOP_RIGHT_MATCHES_BOTTOM_LEFT = 4


DIAGONAL_MIRRORS = (Mirror.TOP_LEFT_MATCHES_BOTTOM_RIGHT, Mirror.TOP_RIGHT_MATCHES_BOTTOM_LEFT)


def cos_snap(angle: float) -> float:
    """math.cos with exact results for the common symmetry angles."""
    return _SNAPPED_COS.get(angle, math.cos(angle))


def sin_snap(angle: float) -> float:
    """math.sin with exact results for the common symmetry angles."""
    return _SNAPPED_SIN.get(angle, math.sin(angle))


def is_trivial_rotation(rotations: int) -> bool:
    """Whether rotated grid squares land exactly on other grid squares."""
    return rotations in (1, 2, 4)


def projection_count(rotations: int, mirror: Mirror) -> int:
    """Number of symmetric copies, including the original."""
    return rotations if mirror == Mirror.NONE else rotations * 2


def mirror_point(mirror: Mirror, point: FloatPoint, extent: FloatPoint) -> FloatPoint:
    """Mirror a zero-area point within an area spanning 0..extent.

    Diagonal mirrors are only defined for square extents.

    Raises:
        ValueError: For Mirror.NONE, or a diagonal mirror on a non-square area.
    """
    x, y = point
    ex, ey = extent
    if mirror == Mirror.NONE:
        raise ValueError("Mirror.NONE has no transformed point")
    if mirror in DIAGONAL_MIRRORS and ex != ey:
        raise ValueError("Diagonal mirrors require a square area")
    if mirror == Mirror.LEFT_MATCHES_RIGHT:
        return (ex - x, y)
    if mirror == Mirror.TOP_LEFT_MATCHES_BOTTOM_RIGHT:
        return (ey - y, ex - x)
    if mirror == Mirror.TOP_MATCHES_BOTTOM:
        return (x, ey - y)
    return (y, x)


def mirror_grid_square(mirror: Mirror, cell: Point, size: Point) -> Point:
    """Mirror a grid square within a grid of the given (width, height)."""
    mx, my = mirror_point(mirror, cell, (size[0] - 1, size[1] - 1))
    return (int(mx), int(my))


def rotate_and_mirror_point(
    point: FloatPoint, size: FloatPoint, rotations: int, mirror: Mirror
) -> list[FloatPoint]:
    """Project a zero-area point to all of its symmetric copies.

    Each rotated copy is followed by its mirror image when a mirror is set.
    Projections may fall outside the area for non-trivial rotations.
    """
    cx, cy = size[0] / 2.0, size[1] / 2.0
    rx, ry = point[0] - cx, point[1] - cy
    projections: list[FloatPoint] = []
    for rotation in range(rotations):
        angle = rotation * math.tau / rotations
        cos_a = cos_snap(angle)
        sin_a = sin_snap(angle)
        projection = (rx * cos_a - ry * sin_a + cx, rx * sin_a + ry * cos_a + cy)
        projections.append(projection)
        if mirror != Mirror.NONE:
            projections.append(mirror_point(mirror, projection, size))
    return projections


def rotate_and_mirror_grid_square(
    cell: Point, size: Point, rotations: int, mirror: Mirror
) -> list[Point]:
    """Project a grid square to all of its symmetric copies, rounded to cells."""
    projections = rotate_and_mirror_point(cell, (size[0] - 1, size[1] - 1), rotations, mirror)
    return [(int(round(px)), int(round(py))) for px, py in projections]


def projection_proximity(cell: Point, size: Point, rotations: int, mirror: Mirror) -> float:
    """Shortest distance between any two projections of a cell.

    Returns math.inf when there is only one copy.
    """
    if projection_count(rotations, mirror) == 1:
        return math.inf
    projections = rotate_and_mirror_grid_square(cell, size, rotations, mirror)
    worst_sq = math.inf
    for i1, (x1, y1) in enumerate(projections):
        for i2, (x2, y2) in enumerate(projections):
            if i1 == i2:
                continue
            spacing_sq = (x1 - x2) ** 2 + (y1 - y2) ** 2
            if spacing_sq < worst_sq:
                worst_sq = spacing_sq
    return int(math.sqrt(worst_sq))


def rotate_and_mirror_plans(
    accumulator: list["EntityPlan"],
    originals: list["EntityPlan"],
    size: Point,
    rotations: int,
    mirror: Mirror,
) -> None:
    """Append every symmetric copy of each original plan to the accumulator.

    Copies keep the original's center offset; locations snap to the grid.
    """
    for original in originals:
        for point in rotate_and_mirror_point(original.center_location, size, rotations, mirror):
            plan = original.clone()
            plan.center_location = point
            accumulator.append(plan)


def rotate_and_mirror_over_grid_squares(
    size: Point,
    rotations: int,
    mirror: Mirror,
    action: Callable[[list[Point], Point], None],
) -> None:
    """Call action(sources, destination) for every cell of the grid."""
    width, height = size
    for y in range(height):
        for x in range(width):
            destination = (x, y)
            action(rotate_and_mirror_grid_square(destination, size, rotations, mirror), destination)


def symmetric_and(mask: NDArray[np.bool_], rotations: int, mirror: Mirror) -> NDArray[np.bool_]:
    """Keep only cells whose symmetric copies are all set.

    Copies falling outside the grid count as unset.
    """
    height, width = mask.shape
    result = np.zeros_like(mask, dtype=bool)

    def combine(sources: list[Point], destination: Point) -> None:
        for sx, sy in sources:
            if not (0 <= sx < width and 0 <= sy < height) or not mask[sy, sx]:
                return
        result[destination[1], destination[0]] = True

    rotate_and_mirror_over_grid_squares((width, height), rotations, mirror, combine)
    return result
