"""Obstacles and the greedy packing of obstacles into replaceable space."""

import math
from enum import IntFlag

import numpy as np
from numpy.typing import NDArray

from .catalog import TerrainCatalog
from .plans import TREE_FOOTPRINTS, EntityPlan, EntityRules
from .streams import pick_weighted
from .tilemap import TerrainTile, TileGrid
from .types import Point


class Replaceability(IntFlag):
    """What may be put on a cell. Contracts combine with `&`."""

    NONE = 0
    # Must get a different tile, may also get an entity
    TILE = 1
    # Must get an entity, the tile stays
    ENTITY = 2
    ANY = 3


def replaceability_table(catalog: TerrainCatalog) -> NDArray[np.uint8]:
    """Replaceability of every (template id, tile index) pair.

    Open water must be re-tiled. Cliff rock is untouchable and the rest of a
    cliff takes entities only. Beaches and roads must be re-tiled. Anything
    else is open to either.
    """
    max_id = max(template.id for template in catalog.templates)
    max_tiles = max(template.tile_count for template in catalog.templates)
    table = np.full((max_id + 1, max_tiles), Replaceability.ANY, dtype=np.uint8)
    for template in catalog.templates:
        for index, tile in enumerate(template.tiles):
            if tile is None:
                continue
            if template.id == catalog.water_tile:
                table[template.id, index] = Replaceability.TILE
            elif "Cliffs" in template.categories:
                table[template.id, index] = Replaceability.NONE if tile == "Rock" else Replaceability.ENTITY
            elif "Beach" in template.categories or "Road" in template.categories:
                table[template.id, index] = Replaceability.TILE
    return table


def identify_replaceable_tiles(grid: TileGrid, table: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Replaceability of every cell of the grid."""
    return table[grid.templates, grid.indices]


class Obstacle:
    """Tiles and/or entities painted together as one unit.

    The shape is every cell the obstacle covers, relative to where it is
    painted, sorted by (y, x).
    """

    def __init__(self, catalog: TerrainCatalog, weight: float = 1.0):
        self.catalog = catalog
        self.weight = weight
        self.tiles: list[tuple[Point, TerrainTile]] = []
        self.entities: list[EntityPlan] = []
        self.shape: list[Point] = []

    @property
    def area(self) -> int:
        return len(self.shape)

    @property
    def has_tiles(self) -> bool:
        return len(self.tiles) != 0

    @property
    def has_entities(self) -> bool:
        return len(self.entities) != 0

    def contract(self) -> Replaceability:
        """The kind of cell this obstacle can be painted over.

        Raises:
            ValueError: If the obstacle is empty.
        """
        if self.has_tiles and self.has_entities:
            return Replaceability.ANY
        if self.has_tiles:
            return Replaceability.TILE
        if self.has_entities:
            return Replaceability.ENTITY
        raise ValueError("Obstacle has no tiles or entities")

    def clone(self) -> "Obstacle":
        other = Obstacle(self.catalog, self.weight)
        other.tiles = list(self.tiles)
        other.entities = list(self.entities)
        other.shape = list(self.shape)
        return other

    def _update_shape(self) -> None:
        cells = {xy for xy, _ in self.tiles}
        for entity in self.entities:
            cells.update(entity.footprint())
        self.shape = sorted(cells, key=lambda xy: (xy[1], xy[0]))

    def with_template(self, template_id: int, offset: Point | None = None) -> "Obstacle":
        """Add a template's tiles.

        Without an offset, the template is shifted so its first non-empty
        tile lands on (0, 0).

        Raises:
            ValueError: If the template is pick-any.
        """
        template = self.catalog.template(template_id)
        if template.pick_any:
            raise ValueError("Pick-any templates are not supported, create separate obstacles instead")
        width, height = template.size
        for y in range(height):
            for x in range(width):
                index = y * width + x
                if template.tiles[index] is None:
                    continue
                if offset is None:
                    offset = (-x, -y)
                self.tiles.append(((x + offset[0], y + offset[1]), (template_id, index)))
        self._update_shape()
        return self

    def with_tile(self, tile: TerrainTile) -> "Obstacle":
        self.tiles.append(((0, 0), tile))
        self._update_shape()
        return self

    def with_entity(self, entity: EntityPlan) -> "Obstacle":
        self.entities.append(entity)
        self._update_shape()
        return self

    def with_backing_tile(self, tile: TerrainTile) -> "Obstacle":
        """Put a tile under every cell of the current shape.

        Raises:
            ValueError: If the obstacle is empty.
        """
        if self.area == 0:
            raise ValueError("No entities to back")
        for xy in self.shape:
            self.tiles.append((xy, tile))
        return self

    def with_weight(self, weight: float) -> "Obstacle":
        self.weight = weight
        return self

    def paint(self, grid: TileGrid, plans: list[EntityPlan], at: Point, contract: Replaceability) -> None:
        """Paint the obstacle at a position under a reserved contract.

        ANY paints entities when there are any, tiles otherwise. TILE paints
        tiles and entities. ENTITY paints entities only.

        Raises:
            ValueError: If the contract cannot be honoured.
        """
        if contract == Replaceability.NONE:
            raise ValueError("Cannot paint: Replaceability.NONE")
        if contract == Replaceability.ANY:
            if self.has_entities:
                self._paint_entities(plans, at)
            elif self.has_tiles:
                self._paint_tiles(grid, at)
            else:
                raise ValueError("Cannot paint: no tiles or entities")
        elif contract == Replaceability.TILE:
            if not self.has_tiles:
                raise ValueError("Cannot paint: no tiles")
            self._paint_tiles(grid, at)
            self._paint_entities(plans, at)
        else:
            if not self.has_entities:
                raise ValueError("Cannot paint: no entities")
            self._paint_entities(plans, at)

    def _paint_tiles(self, grid: TileGrid, at: Point) -> None:
        for (x, y), tile in self.tiles:
            if grid.contains(at[0] + x, at[1] + y):
                grid[at[0] + x, at[1] + y] = tile

    def _paint_entities(self, plans: list[EntityPlan], at: Point) -> None:
        for entity in self.entities:
            plan = entity.clone()
            plan.location = (at[0] + entity.location[0], at[1] + entity.location[1])
            plans.append(plan)


def obstruct_area(
    grid: TileGrid,
    plans: list[EntityPlan],
    replace: NDArray[np.uint8],
    obstacles: list[Obstacle],
    rng: np.random.Generator,
) -> int:
    """Greedily pack obstacles into every replaceable cell.

    Obstacles are grouped by area and placed largest first, then single-cell
    entity obstacles get a final pass. Each group may cover a share of the
    replaceable area proportional to its share of the total weight. Within
    a group, the remaining cells are tried in shuffled order with a
    weighted-random obstacle each; a try fails if any covered cell is taken
    or the combined contract becomes NONE. Cells off the map are ignored.

    Args:
        grid: Tile grid to paint on.
        plans: Entity plans; painted entities are appended.
        replace: Replaceability per cell; NONE cells are never touched.
        obstacles: Candidate obstacles.
        rng: Random number generator.

    Returns:
        Number of obstacles painted.

    Raises:
        ValueError: If no obstacle has a positive weight.
    """
    height, width = replace.shape
    by_area: dict[int, list[Obstacle]] = {}
    for obstacle in obstacles:
        by_area.setdefault(obstacle.area, []).append(obstacle)
    groups = [by_area[area] for area in sorted(by_area, reverse=True)]
    total_weight = sum(obstacle.weight for obstacle in obstacles)
    if obstacles and total_weight <= 0:
        raise ValueError("Obstacle weights must sum to more than zero")
    # Single-cell entities are the most flexible filler
    groups.append([o for o in obstacles if o.has_entities and o.area == 1])

    flat_replace = replace.ravel()
    replace_indices = np.flatnonzero(flat_replace != Replaceability.NONE)
    replace_area = len(replace_indices)
    remaining = flat_replace != Replaceability.NONE

    def reserve_shape(px: int, py: int, shape: list[Point], contract: Replaceability) -> Replaceability:
        covered = []
        for sx, sy in shape:
            x, y = px + sx, py + sy
            if not (0 <= x < width and 0 <= y < height):
                continue
            n = y * width + x
            if not remaining[n]:
                return Replaceability.NONE
            contract &= Replaceability(int(flat_replace[n]))
            if contract == Replaceability.NONE:
                return Replaceability.NONE
            covered.append(n)
        remaining[covered] = False
        return contract

    painted = 0
    for group in groups:
        if not group:
            continue
        area = group[0].area
        weights = [o.weight for o in group]
        if area == 1:
            quota = math.inf
        else:
            quota = math.ceil(replace_area * sum(weights) / total_weight)

        indices = replace_indices[remaining[replace_indices]]
        rng.shuffle(indices)
        for n in indices.tolist():
            obstacle = group[pick_weighted(rng, weights)]
            py, px = divmod(n, width)
            contract = reserve_shape(px, py, obstacle.shape, obstacle.contract())
            if contract != Replaceability.NONE:
                obstacle.paint(grid, plans, (px, py), contract)
                painted += 1
            quota -= area
            if quota <= 0:
                break
    return painted


ROCK_WEIGHTS = {97: 1.0, 98: 1.0, 99: 1.0, 103: 1.0, 104: 1.0, 105: 0.05, 106: 0.05}


def forest_obstacles(catalog: TerrainCatalog, rules: EntityRules) -> list[Obstacle]:
    """Single trees, with the occasional tree husk."""
    obstacles = []
    for weight, suffix in ((1.0, ""), (0.1, ".husk")):
        for name in TREE_FOOTPRINTS:
            if f"{name}{suffix}" in rules:
                plan = rules.plan(f"{name}{suffix}").align_footprint()
                obstacles.append(Obstacle(catalog, weight).with_entity(plan))
    return obstacles


def unplayable_obstacles(catalog: TerrainCatalog, rules: EntityRules) -> list[Obstacle]:
    """Rock debris, plus trees standing on plain land."""
    obstacles = []
    for template in catalog.templates_in_category("Debris"):
        weight = ROCK_WEIGHTS.get(template.id, 1.0)
        obstacles.append(Obstacle(catalog, weight).with_template(template.id))
    clear = (catalog.land_tile, 0)
    for name in TREE_FOOTPRINTS:
        if name in rules:
            plan = rules.plan(name).align_footprint()
            obstacles.append(Obstacle(catalog, 0.1).with_entity(plan).with_backing_tile(clear))
    return obstacles
