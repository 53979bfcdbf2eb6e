"""Shared test fixtures for map generation tests."""

import numpy as np
import pytest

from mapgen.catalog import TerrainCatalog, temperate_catalog
from mapgen.config import MapGeneratorConfig
from mapgen.plans import EntityRules, default_entity_rules
from mapgen.tilemap import TileGrid


@pytest.fixture
def catalog() -> TerrainCatalog:
    """Built-in temperate catalog."""
    return temperate_catalog()


@pytest.fixture
def rules() -> EntityRules:
    """Default entity rules: trees, mines, spawns and tech buildings."""
    return default_entity_rules()


@pytest.fixture
def land_grid(catalog: TerrainCatalog) -> TileGrid:
    """10x10 grid of plain land."""
    grid = TileGrid(10, 10, catalog)
    grid.fill(catalog.land_tile, np.random.default_rng(0))
    return grid


@pytest.fixture
def walled_grid(land_grid: TileGrid, catalog: TerrainCatalog) -> TileGrid:
    """10x10 land grid split by a rock wall at x=5.

    . . . . . R . . . .
    . . . . . R . . . .
    """
    for y in range(10):
        land_grid[5, y] = (104, 0)
    return land_grid


@pytest.fixture
def tiny_config() -> MapGeneratorConfig:
    """2x2 all-land map with every optional stage switched off."""
    return MapGeneratorConfig.model_validate(
        {
            "seed": 7,
            "width": 2,
            "height": 2,
            "terrain": {"water": 0.0, "mountains": 0.0},
            "forests": {"forests": 0.0},
            "roads": {"roads": False},
            "resources": {"resources_per_player": 50},
        }
    )


@pytest.fixture
def single_player_config(tiny_config: MapGeneratorConfig) -> MapGeneratorConfig:
    """2x2 all-land map for one player without any symmetry."""
    symmetry = tiny_config.symmetry.model_copy(update={"rotations": 1, "players": 1})
    return tiny_config.model_copy(update={"symmetry": symmetry})


@pytest.fixture
def small_land_config() -> MapGeneratorConfig:
    """32x32 land map with forests but no water, cliffs or roads."""
    return MapGeneratorConfig.model_validate(
        {
            "seed": 123,
            "width": 32,
            "height": 32,
            "terrain": {"water": 0.0, "mountains": 0.0},
            "forests": {"forests": 0.1},
            "roads": {"roads": False},
            "resources": {"resources_per_player": 2000},
        }
    )
