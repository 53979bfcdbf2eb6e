"""Boundary tracing between true and false regions of a mask.

Paths run along grid corners, so a mask of shape (height, width) yields
points with 0 <= x <= width and 0 <= y <= height. Every path keeps the true
side on its right hand (+y is down). Loops repeat their first point last.
"""

import numpy as np
from numpy.typing import NDArray

from .types import SPREAD4, Direction, Point, direction_from_offset

EDGE_EXTENSION = 4


def borders_to_points(mask: NDArray[np.bool_]) -> list[list[Point]]:
    """Trace every true/false boundary of a mask into ordered point paths.

    Paths touching the map edge are traced first and start and end on the
    edge; the remaining boundaries are closed loops. Each boundary edge is
    consumed by exactly one path.

    Args:
        mask: Boolean mask indexed [y, x].

    Returns:
        List of paths, each a list of (x, y) corner points.
    """
    height, width = mask.shape
    values = mask.astype(np.int8)
    # Signs of the gradients: vertical edges left of cell x, horizontal
    # edges above cell y.
    vertical = np.zeros((height, width), dtype=np.int8)
    vertical[:, 1:] = values[:, 1:] - values[:, :-1]
    horizontal = np.zeros((height, width), dtype=np.int8)
    horizontal[1:, :] = values[1:, :] - values[:-1, :]
    gv = vertical.tolist()
    gh = horizontal.tolist()

    paths: list[list[Point]] = []

    def inside(x: int, y: int) -> bool:
        return 0 <= x < width and 0 <= y < height

    def trace(sx: int, sy: int, direction: Direction) -> None:
        points = [(sx, sy)]
        x, y = sx, sy
        while True:
            if direction == Direction.R:
                gh[y][x] = 0
                x += 1
            elif direction == Direction.D:
                gv[y][x] = 0
                y += 1
            elif direction == Direction.L:
                x -= 1
                gh[y][x] = 0
            else:
                y -= 1
                gv[y][x] = 0
            points.append((x, y))

            r = inside(x, y) and gh[y][x] > 0
            d = inside(x, y) and gv[y][x] < 0
            l = inside(x - 1, y) and gh[y][x - 1] < 0
            u = inside(x, y - 1) and gv[y - 1][x] > 0
            # Prefer turning onto new boundary, then keep clockwise order
            if direction == Direction.R and u:
                direction = Direction.U
            elif direction == Direction.D and r:
                direction = Direction.R
            elif direction == Direction.L and d:
                direction = Direction.D
            elif direction == Direction.U and l:
                direction = Direction.L
            elif r:
                direction = Direction.R
            elif d:
                direction = Direction.D
            elif l:
                direction = Direction.L
            elif u:
                direction = Direction.U
            else:
                break
            if x == sx and y == sy:
                break
        paths.append(points)

    for x in range(1, width):
        if gv[0][x] < 0:
            trace(x, 0, Direction.D)
        if gv[height - 1][x] > 0:
            trace(x, height, Direction.U)

    for y in range(1, height):
        if gh[y][0] > 0:
            trace(0, y, Direction.R)
        if gh[y][width - 1] < 0:
            trace(width, y, Direction.L)

    for y in range(height):
        for x in range(width):
            if gh[y][x] > 0:
                trace(x, y, Direction.R)
            elif gh[y][x] < 0:
                trace(x + 1, y, Direction.L)

            if gv[y][x] < 0:
                trace(x, y, Direction.D)
            elif gv[y][x] > 0:
                trace(x, y + 1, Direction.U)

    return paths


def _edge_extension(point: Point, width: int, height: int, length: int) -> list[Point]:
    x, y = point
    ox = -1 if x == 0 else 1 if x == width else 0
    oy = -1 if y == 0 else 1 if y == height else 0
    if ox == 0 and oy == 0:
        return []
    return [(x + ox * i, y + oy * i) for i in range(1, length + 1)]


def tweak_path_points(points: list[Point], width: int, height: int) -> list[Point]:
    """Reshape a path so it is easier to tile.

    Loops are rotated to start and end in the middle of their longest
    straight run. Open paths that touch the map edge are extended straight
    out past the edge.
    """
    last = len(points) - 1
    if points[0] == points[last]:
        loop_length = last
        prev_dim = -1
        scan_start = -1
        best_score = -1
        best_bend = -1
        prev_bend = -1
        prev_i = 0
        i = 0
        while True:
            i += 1
            if i == loop_length:
                i = 0
            dim = 1 if points[i][0] == points[prev_i][0] else 0
            if prev_dim != -1 and prev_dim != dim:
                if scan_start == -1:
                    scan_start = i
                else:
                    score = prev_i - prev_bend
                    if score < 0:
                        score += loop_length
                    if score > best_score:
                        best_bend = prev_bend
                        best_score = score
                    if i == scan_start:
                        break
                prev_bend = prev_i
            prev_dim = dim
            prev_i = i

        favourite = (best_bend + (best_score >> 1)) % loop_length
        return points[favourite:loop_length] + points[:favourite + 1]

    start_extension = _edge_extension(points[0], width, height, EDGE_EXTENSION)[::-1]
    end_extension = _edge_extension(points[last], width, height, EDGE_EXTENSION)
    return start_extension + list(points) + end_extension


def mask_points(paths: list[list[Point]], mask: NDArray[np.bool_]) -> list[list[Point]]:
    """Split paths wherever they leave a corner-point mask.

    Loops are split starting from their first masked-out point, so pieces
    may wrap around the seam. Pieces with fewer than two points are dropped.

    Args:
        paths: Paths as returned by borders_to_points.
        mask: Boolean mask over corner points, shape (height + 1, width + 1).

    Raises:
        ValueError: If a path has a single point.
    """
    pieces: list[list[Point]] = []
    for path in paths:
        is_loop = path[0] == path[-1]
        first_bad = next((i for i, (x, y) in enumerate(path) if not mask[y, x]), len(path))
        if first_bad == len(path):
            pieces.append(list(path))
            continue

        start_at = first_bad if is_loop else 0
        wrap_at = len(path) - 1 if is_loop else len(path)
        if wrap_at == 0:
            raise ValueError("single point paths should not exist")

        current: list[Point] | None = None
        i = start_at
        while True:
            x, y = path[i]
            if mask[y, x]:
                if current is None:
                    current = []
                current.append(path[i])
            else:
                if current is not None and len(current) > 1:
                    pieces.append(current)
                current = None
            i += 1
            if i == wrap_at:
                i = 0
            if i == start_at:
                break
        if current is not None and len(current) > 1:
            pieces.append(current)
    return pieces


# Cells voted +1 (right hand) and -1 (left hand) for a step from (fx, fy).
_CHIRALITY_SEEDS: dict[Direction, tuple[Point, Point]] = {
    Direction.R: ((0, 0), (0, -1)),
    Direction.D: ((-1, 0), (0, 0)),
    Direction.L: ((-1, -1), (-1, 0)),
    Direction.U: ((0, -1), (-1, -1)),
}


def points_chirality(width: int, height: int, paths: list[list[Point]]) -> NDArray[np.int32]:
    """Classify every cell by which side of the paths it lies on.

    Cells touching a path step are voted +1 on its right hand and -1 on its
    left; the signs then spread outward to unvoted cells with a 4-way flood.

    Raises:
        ValueError: If a path contains a diagonal or zero step.
    """
    chirality = [[0] * width for _ in range(height)]
    frontier: list[Point] = []

    for path in paths:
        for (fx, fy), (tx, ty) in zip(path, path[1:]):
            direction = direction_from_offset(tx - fx, ty - fy)
            if direction not in _CHIRALITY_SEEDS:
                raise ValueError("Unsupported direction for chirality")
            right, left = _CHIRALITY_SEEDS[direction]
            for (ox, oy), vote in ((right, 1), (left, -1)):
                x, y = fx + ox, fy + oy
                if 0 <= x < width and 0 <= y < height:
                    chirality[y][x] += vote
                    frontier.append((x, y))

    while frontier:
        following: list[Point] = []
        for x, y in frontier:
            value = chirality[y][x]
            if value == 0:
                # Tied votes stay undecided
                continue
            for dx, dy in SPREAD4:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and 0 <= ny < height and chirality[ny][nx] == 0:
                    chirality[ny][nx] = value
                    following.append((nx, ny))
        frontier = following

    return np.array(chirality, dtype=np.int32).reshape(height, width)
