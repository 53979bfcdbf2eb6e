"""Tests for path tiling."""

import numpy as np
import pytest

from mapgen.catalog import TerrainCatalog
from mapgen.exceptions import PathTilingError
from mapgen.tilemap import TileGrid
from mapgen.tiling import PermittedTemplates, TilingPath, tile_path
from mapgen.types import Direction


class TestTilingPath:
    """Tests for path terminals."""

    def test_terminals(self, catalog: TerrainCatalog) -> None:
        """Terminals take the direction of the first and last steps."""
        permitted = PermittedTemplates(catalog.find_templates(["Beach"]))
        path = TilingPath([(0, 0), (1, 0), (1, 1)], "Beach", "Beach", permitted)
        assert path.start.direction == Direction.R
        assert path.end.direction == Direction.D
        assert path.end.segment_type == "Beach.D"
        assert not path.is_loop

    def test_loop_end_matches_start(self, catalog: TerrainCatalog) -> None:
        """A loop's end terminal points along its first step."""
        permitted = PermittedTemplates(catalog.find_templates(["Cliff"]))
        path = TilingPath([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)], "Cliff", "Cliff", permitted)
        assert path.is_loop
        assert path.end.segment_type == "Cliff.R"

    def test_too_short(self, catalog: TerrainCatalog) -> None:
        """A path needs at least two points."""
        with pytest.raises(ValueError):
            TilingPath([(0, 0)], "Beach", "Beach", PermittedTemplates([]))

    def test_permitted_union(self, catalog: TerrainCatalog) -> None:
        """The union of permitted sets has no duplicates."""
        beach = catalog.find_templates(["Beach"])
        permitted = PermittedTemplates(beach[:2], beach, beach[1:])
        assert [template.id for template in permitted.all] == [200, 201, 202, 203]


class TestTilePath:
    """Tests for fitting template chains."""

    def test_straight_path(self, catalog: TerrainCatalog) -> None:
        """A straight path is tiled exactly along its points."""
        grid = TileGrid(6, 6, catalog)
        points = [(1, 2), (2, 2), (3, 2), (4, 2)]
        path = TilingPath(points, "Beach", "Beach", PermittedTemplates(catalog.find_templates(["Beach"])))
        traversed = tile_path(grid, path, np.random.default_rng(0), 3)
        assert traversed == points
        beach = grid.terrain_mask("Beach")
        assert beach[2, 1:4].all()
        assert beach.sum() == 3

    def test_single_step(self, catalog: TerrainCatalog) -> None:
        """A one-step path is tiled by one template."""
        grid = TileGrid(4, 4, catalog)
        path = TilingPath([(1, 1), (1, 2)], "Beach", "Beach", PermittedTemplates(catalog.find_templates(["Beach"])))
        assert tile_path(grid, path, np.random.default_rng(0), 3) == [(1, 1), (1, 2)]
        assert grid.terrain_mask("Beach").sum() == 1

    def test_corner(self, catalog: TerrainCatalog) -> None:
        """A path turning a corner follows the corner."""
        grid = TileGrid(8, 8, catalog)
        points = [(1, 1), (2, 1), (3, 1), (3, 2), (3, 3)]
        path = TilingPath(points, "Beach", "Beach", PermittedTemplates(catalog.find_templates(["Beach"])))
        assert tile_path(grid, path, np.random.default_rng(5), 3) == points

    def test_loop(self, catalog: TerrainCatalog) -> None:
        """Closed loops come back to their start."""
        grid = TileGrid(8, 8, catalog)
        points = [(3, 2), (4, 2), (4, 3), (4, 4), (3, 4), (2, 4), (2, 3), (2, 2), (3, 2)]
        path = TilingPath(points, "Cliff", "Cliff", PermittedTemplates(catalog.find_templates(["Cliff"])))
        traversed = tile_path(grid, path, np.random.default_rng(1), 3)
        assert traversed == points
        assert grid.terrain_mask("Rock").sum() == 4

    def test_unknown_terminal_raises(self, catalog: TerrainCatalog) -> None:
        """Terminals no permitted template offers cannot be tiled."""
        grid = TileGrid(6, 6, catalog)
        path = TilingPath([(1, 1), (2, 1)], "Road", "Road", PermittedTemplates(catalog.find_templates(["Beach"])))
        with pytest.raises(PathTilingError):
            tile_path(grid, path, np.random.default_rng(0), 3)
