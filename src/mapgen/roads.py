"""Road skeletons: medial lines through open space.

Open space is eroded by the road spacing, then "deflated": every hole in it
(and the area outside the map) seeds a Voronoi region, and the borders
between regions become a corner-point direction map. Junctions are cut out
of that map, leaving simple lines that are shrunk, extended and tidied into
paths ready for tiling.
"""

import numpy as np
from numpy.typing import NDArray

from .contours import tweak_path_points
from .fields import flood_fill, kernel_dilate_or_erode, reserve_circle_in_place
from .types import (
    DIRECTION_DELTAS,
    MASK_D,
    MASK_L,
    MASK_LD,
    MASK_LU,
    MASK_R,
    MASK_RD,
    MASK_RU,
    MASK_U,
    SPREAD4,
    Direction,
    Point,
    count_directions,
    direction_mask,
    mask_to_direction,
    non_diagonal_direction,
    reverse_direction,
)

ROAD_SHRINK = 4
ROAD_MINIMUM_LENGTH = 12
ROAD_EXTENSION = 2
ROAD_INERTIAL_RANGE = 8
ROAD_MINIMUM_EXTENT = 6

_UNASSIGNED = np.iinfo(np.int64).max


def label_holes(space: NDArray[np.bool_]) -> tuple[NDArray[np.int64], int]:
    """Number each 4-connected area of non-space cells, starting at 1."""
    height, width = space.shape
    holes = np.zeros((height, width), dtype=np.int64)
    hole_count = 0
    for y in range(height):
        for x in range(width):
            if space[y, x] or holes[y, x] != 0:
                continue
            hole_count += 1

            def fill_hole(xy: Point, hole_id: int, _direction: int) -> int | None:
                hx, hy = xy
                if not space[hy, hx] and holes[hy, hx] == 0:
                    holes[hy, hx] = hole_id
                    return hole_id
                return None

            flood_fill((width, height), [((x, y), hole_count, Direction.NONE)], fill_hole)
    return holes, hole_count


def deflate_space(space: NDArray[np.bool_], outside_is_hole: bool) -> NDArray[np.uint8]:
    """Direction map of the borders between the Voronoi regions of holes.

    Args:
        space: Open cells.
        outside_is_hole: Treat the area beyond the map edge as one more hole.

    Returns:
        uint8 direction masks over grid corners, shape (height + 1, width + 1).
    """
    height, width = space.shape
    holes, hole_count = label_holes(space)

    voronoi = np.zeros((height, width), dtype=np.int64)
    distances = np.full(height * width, _UNASSIGNED, dtype=np.int64)
    closest = np.full(height * width, _UNASSIGNED, dtype=np.int64)
    mid_n = (width * height + 1) // 2

    seeds: list[tuple[Point, tuple[int, Point, int], int]] = []
    for y, x in zip(*np.nonzero(holes)):
        x, y = int(x), int(y)
        seeds.append(((x, y), (int(holes[y, x]), (x, y), y * width + x), Direction.NONE))

    if outside_is_hole:
        hole_count += 1
        # Seeds sit on the border but measure distance from just outside it.
        for x in range(width):
            seeds.append(((x, 0), (hole_count, (x, -1), x), Direction.NONE))
            seeds.append(((x, height - 1), (hole_count, (x, height), (height - 1) * width + x), Direction.NONE))
        for y in range(height):
            seeds.append(((0, y), (hole_count, (-1, y), y * width), Direction.NONE))
            seeds.append(((width - 1, y), (hole_count, (width, y), y * width + width - 1), Direction.NONE))

    def assign(xy: Point, prop: tuple[int, Point, int], _direction: int) -> tuple[int, Point, int] | None:
        x, y = xy
        hole_id, (sx, sy), start_n = prop
        n = y * width + x
        distance = (x - sx) ** 2 + (y - sy) ** 2
        if distance < distances[n]:
            voronoi[y, x] = hole_id
            distances[n] = distance
            closest[n] = start_n
            return prop
        if distance == distances[n]:
            if closest[n] == start_n:
                return None
            # Lower seed indices win in the first half of the map, higher
            # ones in the second.
            if (n <= mid_n) == (start_n < closest[n]):
                voronoi[y, x] = hole_id
                closest[n] = start_n
                return prop
        return None

    flood_fill((width, height), seeds, assign, SPREAD4)

    # Clamped neighbours around each corner: up-left, up-right, down-left, down-right
    rows = np.clip(np.arange(height + 1) - 1, 0, height - 1)
    cols = np.clip(np.arange(width + 1) - 1, 0, width - 1)
    rows_below = np.clip(np.arange(height + 1), 0, height - 1)
    cols_right = np.clip(np.arange(width + 1), 0, width - 1)
    up_left = voronoi[np.ix_(rows, cols)]
    up_right = voronoi[np.ix_(rows, cols_right)]
    down_left = voronoi[np.ix_(rows_below, cols)]
    down_right = voronoi[np.ix_(rows_below, cols_right)]

    deflated = np.zeros((height + 1, width + 1), dtype=np.uint8)
    deflated |= np.where(up_left != up_right, MASK_U, 0).astype(np.uint8)
    deflated |= np.where(up_right != down_right, MASK_R, 0).astype(np.uint8)
    deflated |= np.where(down_right != down_left, MASK_D, 0).astype(np.uint8)
    deflated |= np.where(down_left != up_left, MASK_L, 0).astype(np.uint8)
    return deflated


def remove_junctions(direction_map: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Cut every corner where three or more lines meet, and all links off the map."""
    height, width = direction_map.shape
    output = direction_map.copy()
    for cy, cx in zip(*np.nonzero(direction_map)):
        cx, cy = int(cx), int(cy)
        if count_directions(int(direction_map[cy, cx])) <= 2:
            continue
        output[cy, cx] = 0
        for direction, (dx, dy) in DIRECTION_DELTAS.items():
            x, y = cx + dx, cy + dy
            if 0 <= x < width and 0 <= y < height:
                output[y, x] &= ~direction_mask(reverse_direction(direction)) & 0xFF

    output[0, :] &= ~(MASK_LU | MASK_U | MASK_RU) & 0xFF
    output[height - 1, :] &= ~(MASK_RD | MASK_D | MASK_LD) & 0xFF
    output[:, 0] &= ~(MASK_LD | MASK_L | MASK_LU) & 0xFF
    output[:, width - 1] &= ~(MASK_RU | MASK_R | MASK_RD) & 0xFF
    return output


def direction_map_to_point_arrays(direction_map: NDArray[np.uint8]) -> list[list[Point]]:
    """Walk every line from each of its ends.

    Lines are found once from each end; closed loops are never found.

    Raises:
        ValueError: If a line links off the map.
    """
    height, width = direction_map.shape
    lines: list[list[Point]] = []
    for sy in range(height):
        for sx in range(width):
            if mask_to_direction(int(direction_map[sy, sx])) == Direction.NONE:
                continue
            points: list[Point] = []
            x, y = sx, sy
            reverse_mask = 0
            while True:
                points.append((x, y))
                remaining = int(direction_map[y, x]) & ~reverse_mask
                for direction, (dx, dy) in DIRECTION_DELTAS.items():
                    if remaining & direction_mask(direction):
                        x, y = x + dx, y + dy
                        if not (0 <= x < width and 0 <= y < height):
                            raise ValueError("direction map should not link out of bounds")
                        reverse_mask = direction_mask(reverse_direction(direction))
                        break
                else:
                    break
            lines.append(points)
    return lines


def _should_reverse(points: list[Point], width: int, height: int) -> bool:
    mid_x = (width - 1) / 2.0
    mid_y = (height - 1) / 2.0
    v1x, v1y = points[0][0] - mid_x, points[0][1] - mid_y
    v2x, v2y = points[-1][0] - mid_x, points[-1][1] - mid_y

    # Rotation around the center
    cross = v1x * v2y - v2x * v1y
    if cross != 0:
        return cross < 0

    # Distance from the center
    r1 = v1x * v1x + v1y * v1y
    r2 = v2x * v2x + v2y * v2y
    if r1 != r2:
        return r1 < r2

    # Absolute angle
    return v1x > v2x if v1y == v2y else v1y > v2y


def deduplicate_and_normalize(lines: list[list[Point]], width: int, height: int) -> list[list[Point]]:
    """Orient lines consistently and drop the second walk of each line.

    Lines are oriented clockwise around the map center so that symmetric
    copies run the same way. Assumes no two lines share an end point.
    """
    seen = np.zeros((height + 1, width + 1), dtype=bool)
    normalized_lines = []
    for points in lines:
        normalized = list(reversed(points)) if _should_reverse(points, width, height) else list(points)
        x, y = normalized[0]
        if not seen[y, x]:
            seen[y, x] = True
            normalized_lines.append(normalized)
    return normalized_lines


def shrink_point_array(points: list[Point], shrink_by: int, minimum_length: int) -> list[Point] | None:
    """Trim both ends of a line, or None if too little would remain.

    Raises:
        ValueError: If minimum_length is 1 or less.
    """
    if minimum_length <= 1:
        raise ValueError("minimum_length must be greater than 1")
    if len(points) < shrink_by * 2 + minimum_length:
        return None
    return points[shrink_by:len(points) - shrink_by]


def inertially_extend(points: list[Point], extension: int, inertial_range: int) -> list[Point]:
    """Extend both ends straight on, following the line's overall heading there."""
    inertial_range = min(inertial_range, len(points) - 1)
    (x0, y0), (xr, yr) = points[0], points[inertial_range]
    start_direction = non_diagonal_direction(xr - x0, yr - y0)
    (xa, ya), (xb, yb) = points[-(inertial_range + 1)], points[-1]
    end_direction = non_diagonal_direction(xb - xa, yb - ya)
    sdx, sdy = DIRECTION_DELTAS[start_direction]
    edx, edy = DIRECTION_DELTAS[end_direction]

    head = [(x0 - sdx * (extension - i), y0 - sdy * (extension - i)) for i in range(extension)]
    tail = [(xb + edx * (i + 1), yb + edy * (i + 1)) for i in range(extension)]
    return head + list(points) + tail


def plan_roads(space: NDArray[np.bool_], road_spacing: int) -> list[list[Point]]:
    """Turn open space into road center lines.

    Args:
        space: Cells where roads may run.
        road_spacing: Minimum clearance between a road and any non-space cell.

    Returns:
        Open corner-point paths, oriented and extended, ready for tiling.
    """
    height, width = space.shape
    span = road_spacing * 2 + 1
    kernel = np.zeros((span, span), dtype=bool)
    reserve_circle_in_place(kernel, (road_spacing, road_spacing), road_spacing, True)
    eroded = kernel_dilate_or_erode(space, kernel, (road_spacing, road_spacing), False)

    skeleton = remove_junctions(deflate_space(eroded, True))
    lines = deduplicate_and_normalize(direction_map_to_point_arrays(skeleton), width, height)

    roads = []
    for line in lines:
        shrunk = shrink_point_array(line, ROAD_SHRINK, ROAD_MINIMUM_LENGTH)
        if shrunk is None:
            continue
        extended = inertially_extend(shrunk, ROAD_EXTENSION, ROAD_INERTIAL_RANGE)
        tweaked = tweak_path_points(extended, width, height)

        # Nearly straight roads tile badly
        xs = [x for x, _ in tweaked]
        ys = [y for _, y in tweaked]
        if max(xs) - min(xs) < ROAD_MINIMUM_EXTENT or max(ys) - min(ys) < ROAD_MINIMUM_EXTENT:
            continue
        roads.append(tweaked)
    return roads
