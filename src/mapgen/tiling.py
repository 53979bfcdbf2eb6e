"""Fit chains of template segments along a path of grid corners.

The tiler builds a corridor of cells within max_deviation of the path, then
runs a best-first search over (corner, connector type) states where every
edge is one template segment. The cheapest chain from the path's start to
its end is traced back and painted onto the tile grid.
"""

import math

import numpy as np

from .catalog import TemplateSegment, TerrainTemplate
from .exceptions import PathTilingError
from .priority import PriorityArray
from .tilemap import TileGrid
from .types import Direction, Point, direction_from_offset, direction_mask, direction_to_string, reverse_direction

MAX_DEVIATION = np.iinfo(np.int32).max
UNREACHED = math.inf


class PathTerminal:
    """Connector type plus direction at one end of a path."""

    def __init__(self, terrain_type: str, direction: Direction):
        self.terrain_type = terrain_type
        self.direction = direction

    @property
    def segment_type(self) -> str:
        return f"{self.terrain_type}.{direction_to_string(self.direction)}"


class PermittedTemplates:
    """Templates allowed at the start, middle and end of a path."""

    def __init__(
        self,
        start: list[TerrainTemplate],
        inner: list[TerrainTemplate] | None = None,
        end: list[TerrainTemplate] | None = None,
    ):
        self.start = list(start)
        self.inner = list(start if inner is None else inner)
        self.end = list(start if end is None else end)

    @property
    def all(self) -> list[TerrainTemplate]:
        """Union of all three sets, in first-seen order."""
        seen: set[int] = set()
        union = []
        for template in self.start + self.inner + self.end:
            if template.id not in seen:
                seen.add(template.id)
                union.append(template)
        return union


class TilingPath:
    """Points to tile plus the connector types required at either end.

    A path whose first and last points coincide is a loop; its end terminal
    takes the direction of its first step.
    """

    def __init__(self, points: list[Point], start_type: str, end_type: str, permitted: PermittedTemplates):
        if len(points) < 2:
            raise ValueError("A path needs at least two points")
        self.points = list(points)
        self.permitted = permitted
        (x0, y0), (x1, y1) = self.points[0], self.points[1]
        start_direction = direction_from_offset(x1 - x0, y1 - y0)
        if self.is_loop:
            end_direction = start_direction
        else:
            (xa, ya), (xb, yb) = self.points[-2], self.points[-1]
            end_direction = direction_from_offset(xb - xa, yb - ya)
        if start_direction == Direction.NONE or end_direction == Direction.NONE:
            raise ValueError("Path has duplicate points at its ends")
        self.start = PathTerminal(start_type, start_direction)
        self.end = PathTerminal(end_type, end_direction)

    @property
    def is_loop(self) -> bool:
        return self.points[0] == self.points[-1]


class _SegmentEdge:
    """A template segment prepared for the search."""

    def __init__(self, template: TerrainTemplate, segment: TemplateSegment, start_id: int, end_id: int):
        self.template = template
        self.segment = segment
        self.start_id = start_id
        self.end_id = end_id
        self.offset = segment.points[0]
        ox, oy = self.offset
        self.relative_points = [(x - ox, y - oy) for x, y in segment.points]
        last_x, last_y = self.relative_points[-1]
        self.moves = (last_x, last_y)
        self.masks: list[int] = []
        self.reverse_masks: list[int] = []
        for (ax, ay), (bx, by) in zip(self.relative_points, self.relative_points[1:]):
            direction = direction_from_offset(bx - ax, by - ay)
            self.masks.append(direction_mask(direction))
            self.reverse_masks.append(direction_mask(reverse_direction(direction)))


def _progress_mask(direction: Direction) -> int:
    """The direction and its two neighbours, as a mask."""
    d = int(direction)
    return (1 << d) | (1 << ((d + 1) % 8)) | (1 << ((d + 7) % 8))


def _square_traversables(radius: int) -> list[list[int]]:
    """Moves that stay inside a (2r+1)^2 square, per cell of the square."""
    span = 2 * radius + 1
    masks = []
    for y in range(span):
        row = []
        for x in range(span):
            mask = 0
            for direction, (dx, dy) in (
                (Direction.R, (1, 0)),
                (Direction.RD, (1, 1)),
                (Direction.D, (0, 1)),
                (Direction.LD, (-1, 1)),
                (Direction.L, (-1, 0)),
                (Direction.LU, (-1, -1)),
                (Direction.U, (0, -1)),
                (Direction.RU, (1, -1)),
            ):
                if 0 <= x + dx < span and 0 <= y + dy < span:
                    mask |= direction_mask(direction)
            row.append(mask)
        masks.append(row)
    return masks


def tile_path(grid: TileGrid, path: TilingPath, rng: np.random.Generator, minimum_thickness: int) -> list[Point]:
    """Paint the cheapest chain of permitted segments along a path.

    Args:
        grid: Tile grid to paint on.
        path: Path with terminals and permitted templates.
        rng: Breaks ties between equally good chains.
        minimum_thickness: Corridor width; segments may stray up to
            (minimum_thickness - 1) // 2 cells from the path.

    Returns:
        The corner points actually traversed by the chosen segments, in map
        coordinates, from the path's start to its end.

    Raises:
        PathTilingError: If no chain of permitted segments fits.
    """
    max_deviation = (minimum_thickness - 1) >> 1
    min_x = min(x for x, _ in path.points) - max_deviation
    min_y = min(y for _, y in path.points) - max_deviation
    max_x = max(x for x, _ in path.points) + max_deviation
    max_y = max(y for _, y in path.points) + max_deviation
    points = [(x - min_x, y - min_y) for x, y in path.points]
    width = 1 + max_x - min_x
    height = 1 + max_y - min_y
    area = width * height

    deviations = np.full((height, width), MAX_DEVIATION, dtype=np.int64)
    traversables = np.zeros((height, width), dtype=np.uint8)
    gradient_x = np.zeros((height, width), dtype=np.int64)
    gradient_y = np.zeros((height, width), dtype=np.int64)

    span = 2 * max_deviation + 1
    ring = np.arange(span) - max_deviation
    chebyshev = np.maximum(np.abs(ring)[:, None], np.abs(ring)[None, :])
    square_masks = np.array(_square_traversables(max_deviation), dtype=np.uint8)

    for i, (px, py) in enumerate(points):
        if path.is_loop and i == 0:
            # Same as the last point
            continue
        dx = dy = 0
        if i + 1 < len(points):
            dx += points[i + 1][0] - px
            dy += points[i + 1][1] - py
        if i > 0:
            dx += px - points[i - 1][0]
            dy += py - points[i - 1][1]
        window = (slice(py - max_deviation, py + max_deviation + 1), slice(px - max_deviation, px + max_deviation + 1))
        np.minimum(deviations[window], chebyshev, out=deviations[window])
        gradient_x[window] += dx
        gradient_y[window] += dy
        traversables[window] |= square_masks

    directions = np.zeros((height, width), dtype=np.uint8)
    for y, x in zip(*np.nonzero((gradient_x != 0) | (gradient_y != 0))):
        direction = direction_from_offset(int(gradient_x[y, x]), int(gradient_y[y, x]))
        directions[y, x] = _progress_mask(direction)

    dev = deviations.ravel().tolist()
    trav = traversables.ravel().tolist()
    progress = directions.ravel().tolist()

    type_ids: dict[str, int] = {}
    by_start: list[list[_SegmentEdge]] = []
    by_end: list[list[_SegmentEdge]] = []

    def register(segment_type: str) -> int:
        if segment_type not in type_ids:
            type_ids[segment_type] = len(type_ids)
            by_start.append([])
            by_end.append([])
        return type_ids[segment_type]

    for template in path.permitted.all:
        for segment in template.segments:
            start_id = register(segment.start)
            end_id = register(segment.end)
            edge = _SegmentEdge(template, segment, start_id, end_id)
            by_start[start_id].append(edge)
            by_end[end_id].append(edge)

    for terminal in (path.start, path.end):
        if terminal.segment_type not in type_ids:
            raise PathTilingError(f"No permitted template connects to {terminal.segment_type}")

    start_type_id = type_ids[path.start.segment_type]
    end_type_id = type_ids[path.end.segment_type]
    inner_type_ids = {
        type_ids[segment_type]
        for template in path.permitted.inner
        for segment in template.segments
        for segment_type in (segment.start, segment.end)
    }

    scores: list[list[float]] = [[UNREACHED] * area for _ in type_ids]
    priorities = PriorityArray(len(type_ids) * area)
    path_start = points[0]
    path_end = points[-1]

    def score_segment(edge: _SegmentEdge, fx: int, fy: int) -> float:
        # Lower is better; UNREACHED rejects the segment.
        if (fx, fy) == path_start:
            if edge.start_id != start_type_id:
                return UNREACHED
        elif edge.start_id not in inner_type_ids:
            return UNREACHED
        if (fx + edge.moves[0], fy + edge.moves[1]) == path_end:
            if edge.end_id != end_type_id:
                return UNREACHED
        elif edge.end_id not in inner_type_ids:
            return UNREACHED

        deviation_total = 0
        progression = 0
        last = len(edge.relative_points) - 1
        for i, (rx, ry) in enumerate(edge.relative_points):
            px, py = fx + rx, fy + ry
            if not (0 <= px < width and 0 <= py < height):
                return UNREACHED
            n = py * width + px
            if i < last:
                mask = edge.masks[i]
                if trav[n] & mask == 0:
                    return UNREACHED
                if progress[n] & mask:
                    progression += 1
                elif progress[n] & edge.reverse_masks[i]:
                    progression -= 1
            if i > 0:
                deviation_total += dev[n]
        if progression < 0:
            # Moved backwards
            return UNREACHED
        return deviation_total

    def update_from(fx: int, fy: int, type_id: int) -> None:
        n = fy * width + fx
        from_score = scores[type_id][n]
        for edge in by_start[type_id]:
            tx, ty = fx + edge.moves[0], fy + edge.moves[1]
            if not (0 <= tx < width and 0 <= ty < height):
                continue
            tn = ty * width + tx
            if dev[tn] == MAX_DEVIATION:
                continue
            segment_score = score_segment(edge, fx, fy)
            if segment_score == UNREACHED:
                continue
            to_score = from_score + segment_score
            if to_score < scores[edge.end_id][tn]:
                scores[edge.end_id][tn] = to_score
                priorities[edge.end_id * area + tn] = to_score
        priorities[type_id * area + n] = UNREACHED

    start_n = path_start[1] * width + path_start[0]
    scores[start_type_id][start_n] = 0
    update_from(path_start[0], path_start[1], start_type_id)
    # Lets a loop arrive back at its own start
    scores[start_type_id][start_n] = UNREACHED

    while True:
        index = priorities.min_index()
        if priorities[index] == UNREACHED:
            break
        type_id, n = divmod(index, area)
        update_from(n % width, n // width, type_id)

    traversed: list[Point] = [(path_end[0] + min_x, path_end[1] + min_y)]

    def trace_back_step(tx: int, ty: int, to_type_id: int, to_score: float) -> tuple[int, int, int]:
        candidates = []
        for edge in by_end[to_type_id]:
            fx, fy = tx - edge.moves[0], ty - edge.moves[1]
            if not (0 <= fx < width and 0 <= fy < height):
                continue
            fn = fy * width + fx
            if dev[fn] == MAX_DEVIATION:
                continue
            segment_score = score_segment(edge, fx, fy)
            if segment_score == UNREACHED:
                continue
            if to_score - segment_score == scores[edge.start_id][fn]:
                candidates.append(edge)
        if not candidates:
            raise PathTilingError("Could not trace tiles back along path")

        chosen = candidates[int(rng.integers(len(candidates)))]
        fx, fy = tx - chosen.moves[0], ty - chosen.moves[1]
        grid.paint_template((fx - chosen.offset[0] + min_x, fy - chosen.offset[1] + min_y), chosen.template)
        # The end point was recorded by the previous step
        for rx, ry in reversed(chosen.relative_points[:-1]):
            traversed.append((fx + rx + min_x, fy + ry + min_y))
        return fx, fy, chosen.start_id

    end_n = path_end[1] * width + path_end[0]
    end_score = scores[end_type_id][end_n]
    if end_score == UNREACHED:
        raise PathTilingError("Could not fit tiles for path")
    # A loop reads its arrival score before the start is reset
    scores[start_type_id][start_n] = 0
    x, y, type_id = trace_back_step(path_end[0], path_end[1], end_type_id, end_score)
    while (x, y) != path_start:
        x, y, type_id = trace_back_step(x, y, type_id, scores[type_id][y * width + x])

    traversed.reverse()
    return traversed
