"""Connected playable regions of the tile grid."""

from enum import IntEnum

import numpy as np
from numpy.typing import NDArray

from .catalog import TerrainCatalog
from .exceptions import NoPlayableRegionError
from .fields import flood_fill, reserve_circle_in_place
from .plans import EntityPlan, reserve_for_entities
from .tilemap import TileGrid
from .types import Direction, Point

PLAYABLE_TERRAIN = ("Beach", "Clear", "Gems", "Ore", "Road", "Rough", "Water")


class Playability(IntEnum):
    """Whether land or naval units can use a cell."""

    UNPLAYABLE = 0
    # Unusable itself, but counts as inside the region around it, e.g. the
    # odd rock in a mostly passable template.
    PARTIAL = 1
    PLAYABLE = 2


class Region:
    """A connected component of playable cells."""

    def __init__(self, region_id: int) -> None:
        self.id = region_id
        self.area = 0
        self.playable_area = 0
        self.external_circle = False

    def __repr__(self) -> str:
        return f"Region(id={self.id}, area={self.area}, playable_area={self.playable_area})"


def playability_table(catalog: TerrainCatalog) -> NDArray[np.uint8]:
    """Playability of every (template id, tile index) pair.

    Beach and road tiles of otherwise unplayable terrain are partial.
    """
    max_id = max(template.id for template in catalog.templates)
    max_tiles = max(template.tile_count for template in catalog.templates)
    table = np.full((max_id + 1, max_tiles), Playability.UNPLAYABLE, dtype=np.uint8)
    playable_types = set(PLAYABLE_TERRAIN)
    for template in catalog.templates:
        softened = "Beach" in template.categories or "Road" in template.categories
        for index, tile in enumerate(template.tiles):
            if tile is None:
                continue
            if tile in playable_types:
                table[template.id, index] = Playability.PLAYABLE
            elif softened:
                table[template.id, index] = Playability.PARTIAL
    return table


def external_circle_mask(width: int, height: int) -> NDArray[np.bool_]:
    """Cells outside the circle inscribed in the map, inset by one cell."""
    mask = np.zeros((height, width), dtype=bool)
    center = ((width - 1) / 2.0, (height - 1) / 2.0)
    reserve_circle_in_place(mask, center, min(width, height) / 2.0 - 1.0, True, invert=True)
    return mask


def _demote_playable(old: NDArray[np.uint8]) -> NDArray[np.uint8]:
    return np.where(old == Playability.PLAYABLE, Playability.PARTIAL, old)


def find_playable_regions(
    grid: TileGrid, plans: list[EntityPlan], table: NDArray[np.uint8]
) -> tuple[NDArray[np.int32], list[Region], NDArray[np.uint8]]:
    """Flood-fill the grid into regions of playable cells.

    Cells under entity footprints and zoning discs are demoted from playable
    to partial first. A region spreads through playable cells; partial cells
    it touches join it but only pass the flood on to other partial cells.

    Args:
        grid: Tile grid.
        plans: Entity plans placed so far.
        table: Playability lookup from playability_table.

    Returns:
        Tuple of (region id per cell with 0 for none, regions in id order,
        playability per cell).
    """
    width, height = grid.size
    playable = table[grid.templates, grid.indices].copy()
    reserve_for_entities(playable, plans, _demote_playable)
    external = external_circle_mask(width, height)
    region_mask = np.zeros((height, width), dtype=np.int32)
    regions: list[Region] = []

    for y in range(height):
        for x in range(width):
            if region_mask[y, x] != 0 or playable[y, x] != Playability.PLAYABLE:
                continue
            region = Region(len(regions) + 1)
            regions.append(region)

            def add(xy: Point, fully_playable: bool, _direction: int, region: Region = region) -> bool | None:
                cx, cy = xy
                if region_mask[cy, cx] != 0:
                    return None
                if fully_playable and playable[cy, cx] == Playability.PLAYABLE:
                    region.playable_area += 1
                    keep_going = True
                elif playable[cy, cx] == Playability.PARTIAL:
                    keep_going = False
                else:
                    return None
                region_mask[cy, cx] = region.id
                region.area += 1
                if external[cy, cx]:
                    region.external_circle = True
                return keep_going

            flood_fill((width, height), [((x, y), True, Direction.NONE)], add)

    return region_mask, regions, playable


def largest_region(regions: list[Region], exclude_external: bool) -> Region:
    """The region with the most playable area; earlier regions win ties.

    Raises:
        NoPlayableRegionError: If no region qualifies.
    """
    largest = None
    for region in regions:
        if exclude_external and region.external_circle:
            continue
        if largest is None or region.playable_area > largest.playable_area:
            largest = region
    if largest is None:
        raise NoPlayableRegionError("could not find a playable region")
    return largest


def playable_area(
    playability: NDArray[np.uint8], region_mask: NDArray[np.int32], region: Region
) -> NDArray[np.bool_]:
    """Fully playable cells of one region."""
    return (playability == Playability.PLAYABLE) & (region_mask == region.id)
