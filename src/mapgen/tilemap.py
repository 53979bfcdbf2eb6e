"""The map buffer: a grid of (template id, tile index) pairs."""

import numpy as np
from numpy.typing import NDArray

from .catalog import TerrainCatalog, TerrainTemplate
from .types import Point

TerrainTile = tuple[int, int]


class TileGrid:
    """Tiles of a width x height map, stored as two parallel arrays.

    templates holds template ids and indices the tile index within each
    template, both indexed [y, x].
    """

    def __init__(self, width: int, height: int, catalog: TerrainCatalog):
        self.width = width
        self.height = height
        self.catalog = catalog
        self.templates: NDArray[np.uint16] = np.full((height, width), catalog.land_tile, dtype=np.uint16)
        self.indices: NDArray[np.uint8] = np.zeros((height, width), dtype=np.uint8)

    @property
    def size(self) -> Point:
        return (self.width, self.height)

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def __getitem__(self, xy: Point) -> TerrainTile:
        x, y = xy
        return (int(self.templates[y, x]), int(self.indices[y, x]))

    def __setitem__(self, xy: Point, tile: TerrainTile) -> None:
        x, y = xy
        self.templates[y, x] = tile[0]
        self.indices[y, x] = tile[1]

    def pick_tile(self, template_id: int, rng: np.random.Generator) -> TerrainTile:
        """A random variant of a pick-any template, or tile 0 of any other."""
        template = self.catalog.template(template_id)
        if template.pick_any:
            return (template_id, int(rng.integers(template.tile_count)))
        return (template_id, 0)

    def fill(self, template_id: int, rng: np.random.Generator, mask: NDArray[np.bool_] | None = None) -> None:
        """Fill every cell (or the masked cells) with tiles of one template.

        Pick-any templates get an independent random variant per cell, drawn
        in row-major order.
        """
        if mask is None:
            mask = np.ones((self.height, self.width), dtype=bool)
        template = self.catalog.template(template_id)
        count = int(np.count_nonzero(mask))
        self.templates[mask] = template_id
        if template.pick_any:
            self.indices[mask] = rng.integers(template.tile_count, size=count)
        else:
            self.indices[mask] = 0

    def paint_template(self, at: Point, template: TerrainTemplate) -> None:
        """Stamp a template with its top-left cell at `at`, clipped to the map.

        Raises:
            ValueError: If the template is pick-any.
        """
        if template.pick_any:
            raise ValueError("paint_template does not accept pick-any templates")
        ax, ay = at
        width, height = template.size
        for ty in range(height):
            for tx in range(width):
                index = ty * width + tx
                if template.tiles[index] is None:
                    continue
                x, y = ax + tx, ay + ty
                if self.contains(x, y):
                    self.templates[y, x] = template.id
                    self.indices[y, x] = index

    def terrain_indices(self) -> NDArray[np.uint8]:
        """Terrain type index of every cell."""
        return self.catalog.terrain_index_grid(self.templates, self.indices)

    def terrain_mask(self, terrain_type: str) -> NDArray[np.bool_]:
        """Cells whose terrain type is the given name."""
        return self.terrain_indices() == self.catalog.terrain_index(terrain_type)

    def copy(self) -> "TileGrid":
        grid = TileGrid(self.width, self.height, self.catalog)
        grid.templates = self.templates.copy()
        grid.indices = self.indices.copy()
        return grid
