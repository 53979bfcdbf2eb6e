"""Spawn, expansion and neutral building placement.

Every placement follows the same pattern: measure roominess of the zoneable
mask, pick one of the roomiest cells, plan entities there, project them
through the map's symmetry and reserve the space they zone.
"""

import math

import numpy as np
import structlog
from numpy.typing import NDArray
from structlog.typing import FilteringBoundLogger

from .fields import calculate_roominess, reserve_circle_in_place
from .plans import EntityInfo, EntityPlan, EntityRules, reserve_for_entities
from .streams import pick_weighted
from .symmetry import Mirror, is_trivial_rotation, projection_proximity, rotate_and_mirror_plans, symmetric_and
from .tilemap import TileGrid
from .types import Point

SQRT2 = math.sqrt(2.0)


def _unzoned(_old: object) -> bool:
    return False


def zoneable_mask(
    grid: TileGrid,
    playable_area: NDArray[np.bool_],
    plans: list[EntityPlan],
    rotations: int,
    mirror: Mirror,
) -> NDArray[np.bool_]:
    """Clear, playable cells that no planned entity occupies or zones.

    Trivial rotations keep only cells whose symmetric copies all qualify.
    Other rotations confine placement to the inscribed circle. Symmetric
    maps also give up the cells around the center.
    """
    width, height = grid.size
    zoneable = playable_area & grid.terrain_mask("Clear")
    reserve_for_entities(zoneable, plans, _unzoned)
    center = ((width - 0.5) / 2.0, (height - 0.5) / 2.0)
    if is_trivial_rotation(rotations):
        zoneable = symmetric_and(zoneable, rotations, mirror)
    else:
        reserve_circle_in_place(zoneable, center, min(width, height) / 2.0 - 1.0, False, invert=True)
    if rotations > 1 or mirror != Mirror.NONE:
        reserve_circle_in_place(zoneable, center, 1.0, False)
    return zoneable


def calculate_spawn_preferences(
    roominess: NDArray[np.int32],
    central_reservation: float,
    spawn_region_size: int,
    rotations: int,
    mirror: Mirror,
) -> NDArray[np.int32]:
    """Roominess capped at the spawn region size, discouraging crowded spots.

    Cells near the center (or near the mirror axis) drop to 1, a last
    resort. Remaining cells are capped at half the distance to their own
    nearest symmetric copy.

    Args:
        roominess: Roominess of the zoneable mask.
        central_reservation: Radius (or axis half-width) kept clear of spawns.
        spawn_region_size: Upper bound of the preference.
        rotations: Rotational symmetry.
        mirror: Mirror axis.

    Returns:
        Preference per cell, same shape as roominess.
    """
    height, width = roominess.shape
    preferences = np.minimum(roominess, spawn_region_size).astype(np.int32)
    reservation_sq = central_reservation * central_reservation
    cx = width / 2.0 - 0.5
    cy = height / 2.0 - 0.5

    for y, x in zip(*np.nonzero(preferences > 1)):
        x, y = int(x), int(y)
        dx, dy = x - cx, y - cy
        if mirror == Mirror.NONE:
            central = dx * dx + dy * dy <= reservation_sq
        elif mirror == Mirror.LEFT_MATCHES_RIGHT:
            central = abs(dx) <= central_reservation
        elif mirror == Mirror.TOP_LEFT_MATCHES_BOTTOM_RIGHT:
            central = abs(dx + dy) <= central_reservation * SQRT2
        elif mirror == Mirror.TOP_MATCHES_BOTTOM:
            central = abs(dy) <= central_reservation
        else:
            central = abs(dx - dy) <= central_reservation * SQRT2
        if central:
            preferences[y, x] = 1
            continue

        proximity = projection_proximity((x, y), (width, height), rotations, mirror)
        if proximity != math.inf:
            preferences[y, x] = min(int(preferences[y, x]), int(proximity) // 2)
    return preferences


def find_random_max(rng: np.random.Generator, matrix: NDArray[np.integer], cap: int) -> tuple[Point, int]:
    """A uniformly random cell among those with the highest value.

    Values above cap count as cap, so every cell at or above it is a
    candidate.

    Returns:
        Tuple of ((x, y), value) where value is at most cap.
    """
    height, width = matrix.shape
    capped = np.minimum(matrix, cap)
    best = int(capped.max())
    candidates = np.flatnonzero(capped.ravel() == best)
    choice = int(candidates[rng.integers(len(candidates))])
    y, x = divmod(choice, width)
    return (x, y), best


def place_mines(
    rng: np.random.Generator,
    rules: EntityRules,
    size: Point,
    center: Point,
    inner_radius: float,
    outer_radius: float,
    count: int,
    gem_upgrade: float,
    mine_reservation: float,
) -> list[EntityPlan]:
    """Scatter mines over a ring around a center.

    Each cell of the ring is weighted by its squared distance from the
    center, so the outer edge is favoured. A chosen cell and its immediate
    neighbours are removed from the ring. Each mine is a gem mine with
    probability gem_upgrade.
    """
    width, height = size
    weights = np.zeros((height, width), dtype=np.float32)
    inner_sq = inner_radius * inner_radius
    reserve_circle_in_place(
        weights,
        center,
        outer_radius,
        lambda r_sq, _old: np.where(r_sq >= inner_sq, r_sq, 0.0),
    )

    mines = []
    for _ in range(count):
        if not np.any(weights > 0):
            break
        y, x = divmod(pick_weighted(rng, weights), width)
        name = "gmine" if rng.random() < gem_upgrade else "mine"
        mines.append(rules.plan(name, (x, y), zoning_radius=mine_reservation))
        reserve_circle_in_place(weights, (x, y), 1.0, 0.0)
    return mines


def place_spawns(
    zoneable: NDArray[np.bool_],
    plans: list[EntityPlan],
    rules: EntityRules,
    players: int,
    central_reservation: float,
    spawn_region_size: int,
    spawn_build_size: int,
    spawn_mines: int,
    spawn_reservation: float,
    mine_reservation: float,
    gem_upgrade: float,
    rotations: int,
    mirror: Mirror,
    rng: np.random.Generator,
    mine_rng: np.random.Generator,
    log: FilteringBoundLogger | None = None,
) -> list[Point]:
    """Place one spawn per player, each with its ring of mines.

    Spawns prefer roomy cells away from the center; when nowhere scores
    above 1, the central reservation is ignored. Plans for every symmetric
    copy are appended to plans and their space is removed from zoneable.

    Returns:
        The chosen spawn cells, before projection.
    """
    if log is None:
        log = structlog.get_logger()
    height, width = zoneable.shape
    chosen = []
    for player in range(players):
        roominess = calculate_roominess(zoneable, False)
        preferences = calculate_spawn_preferences(
            roominess, central_reservation, spawn_region_size, rotations, mirror
        )
        xy, value = find_random_max(rng, preferences, spawn_region_size)
        if value <= 1:
            log.debug("spawn_central_reservation_ignored", player=player)
            xy, value = find_random_max(rng, roominess, spawn_region_size)

        room = value - 1
        spawn = rules.plan("mpspawn", xy, zoning_radius=spawn_reservation)
        spawn_plans = [spawn]

        outer = min(spawn_region_size, room)
        inner = min(min(spawn_build_size, room), outer - 2)
        if inner >= 2:
            spawn_plans += place_mines(
                mine_rng, rules, (width, height), xy, inner, outer, spawn_mines, gem_upgrade, mine_reservation
            )

        rotate_and_mirror_plans(plans, spawn_plans, (width, height), rotations, mirror)
        reserve_for_entities(zoneable, plans, _unzoned)
        log.debug("spawn_placed", player=player, x=xy[0], y=xy[1], room=room, mines=len(spawn_plans) - 1)
        chosen.append(xy)
    return chosen


def place_expansions(
    zoneable: NDArray[np.bool_],
    plans: list[EntityPlan],
    rules: EntityRules,
    central_reservation: float,
    maximum_mines: int,
    maximum_mines_per_expansion: int,
    minimum_size: int,
    maximum_size: int,
    inner_size: int,
    border: int,
    mine_reservation: float,
    gem_upgrade: float,
    rotations: int,
    mirror: Mirror,
    rng: np.random.Generator,
    mine_rng: np.random.Generator,
    log: FilteringBoundLogger | None = None,
) -> int:
    """Place mine clusters in the roomiest remaining space.

    Stops once maximum_mines have been handed out or no room of at least
    minimum_size is left.

    Returns:
        Number of expansions placed, before projection.
    """
    if log is None:
        log = structlog.get_logger()
    height, width = zoneable.shape
    center = ((width - 0.5) / 2.0, (height - 0.5) / 2.0)
    remaining = maximum_mines
    expansions = 0
    while remaining > 0:
        candidates = zoneable.copy()
        if central_reservation > 0:
            reserve_circle_in_place(candidates, center, central_reservation, False)
        roominess = calculate_roominess(candidates, False)
        xy, value = find_random_max(rng, roominess, maximum_size + border)

        room = value - 1
        outer = room - border
        if outer < minimum_size:
            break
        outer = min(outer, maximum_size)
        inner = min(min(inner_size, room), outer)
        mine_count = min(remaining, int(rng.integers(maximum_mines_per_expansion)) + 1)
        remaining -= mine_count
        if inner < 1:
            break

        mines = place_mines(
            mine_rng, rules, (width, height), xy, inner, outer, mine_count, gem_upgrade, mine_reservation
        )
        rotate_and_mirror_plans(plans, mines, (width, height), rotations, mirror)
        reserve_for_entities(zoneable, plans, _unzoned)
        expansions += 1
        log.debug("expansion_placed", x=xy[0], y=xy[1], room=room, mines=len(mines))
    return expansions


def building_radius(info: EntityInfo) -> int:
    """Clearance a building needs around its center."""
    xs = [x for x, _ in info.footprint] or [0]
    ys = [y for _, y in info.footprint] or [0]
    span = max(max(xs) - min(xs), max(ys) - min(ys)) + 1
    return span // 2 + 1


def place_buildings(
    zoneable: NDArray[np.bool_],
    plans: list[EntityPlan],
    rules: EntityRules,
    weights: dict[str, float],
    minimum: int,
    maximum: int,
    rotations: int,
    mirror: Mirror,
    rng: np.random.Generator,
    log: FilteringBoundLogger | None = None,
) -> list[str]:
    """Place neutral tech buildings.

    Draws a count between minimum and maximum (inclusive), then for each
    building picks a type by weight and the roomiest cell that can hold it.
    Placement stops early when no such cell is left.

    Returns:
        Types of the buildings placed, before projection.
    """
    if log is None:
        log = structlog.get_logger()
    names = [name for name, weight in weights.items() if weight > 0]
    if not names or maximum <= 0:
        return []
    height, width = zoneable.shape
    name_weights = [weights[name] for name in names]
    count = int(rng.integers(minimum, maximum + 1))

    placed = []
    for _ in range(count):
        name = names[pick_weighted(rng, name_weights)]
        info = rules[name]
        radius = building_radius(info)
        roominess = calculate_roominess(zoneable, False)
        xy, value = find_random_max(rng, roominess, radius + 1)
        if value - 1 < radius:
            log.debug("building_no_room", type=name, room=value - 1)
            break

        building = rules.plan(name, zoning_radius=radius)
        building.center_location = (xy[0] + 0.5, xy[1] + 0.5)
        rotate_and_mirror_plans(plans, [building], (width, height), rotations, mirror)
        reserve_for_entities(zoneable, plans, _unzoned)
        placed.append(name)
        log.debug("building_placed", type=name, x=xy[0], y=xy[1])
    return placed

