"""End-to-end tests for map generation."""

import numpy as np
import pytest
from scipy import ndimage

from mapgen.catalog import TerrainCatalog, temperate_catalog
from mapgen.config import MapGeneratorConfig
from mapgen.exceptions import SettingsValidationError
from mapgen.generator import GenerationResult, generate_map
from mapgen.resources import RESOURCE_TYPES
from mapgen.symmetry import Mirror


class TestGenerateMap:
    """Tests for the full generation pipeline."""

    def test_tiny_map(self, tiny_config: MapGeneratorConfig, catalog: TerrainCatalog) -> None:
        """A 2x2 map gets two opposite spawns and ore on the other diagonal."""
        result = generate_map(tiny_config, catalog)
        assert result.tiles.shape == (2, 2)
        assert (result.tiles == catalog.land_tile).all()
        assert result.land_plan.all()

        spawns = result.entities_of_type("mpspawn")
        assert len(spawns) == 2
        (x1, y1), (x2, y2) = (plan.location for plan in spawns)
        assert (x2, y2) == (1 - x1, 1 - y1)
        assert len(result.entities) == 2

        assert result.resource_target == 100
        assert np.count_nonzero(result.resource_types) == 2
        assert result.resource_types[y1, x1] == 0
        assert result.resource_types[y2, x2] == 0
        assert result.resource_densities.max() == 2
        assert result.resource_value == 150
        assert result.resource_shortfall == 0

    def test_single_player_map(self, single_player_config: MapGeneratorConfig, catalog: TerrainCatalog) -> None:
        """One player without symmetry gets one spawn, no coast, and the target within a cell."""
        result = generate_map(single_player_config, catalog)
        assert len(result.entities_of_type("mpspawn")) == 1
        beach_ids = [template.id for template in catalog.templates_in_category("Beach")]
        assert not np.isin(result.tiles, beach_ids).any()

        assert result.resource_target == 50
        max_cell_value = max(resource.cell_value(resource.max_density) for resource in RESOURCE_TYPES)
        assert abs(result.resource_value - result.resource_target) < max_cell_value
        assert result.resource_value == 50

    def test_invalid_settings(self, tiny_config: MapGeneratorConfig) -> None:
        """Invalid settings fail before any generation work."""
        config = tiny_config.model_copy(
            update={"terrain": tiny_config.terrain.model_copy(update={"water": 1.5})}
        )
        with pytest.raises(SettingsValidationError):
            generate_map(config)

    def test_deterministic(self, small_land_config: MapGeneratorConfig) -> None:
        """The same settings always produce the same map."""
        first = generate_map(small_land_config)
        second = generate_map(small_land_config)
        np.testing.assert_array_equal(first.tiles, second.tiles)
        np.testing.assert_array_equal(first.tile_indices, second.tile_indices)
        np.testing.assert_array_equal(first.resource_types, second.resource_types)
        np.testing.assert_array_equal(first.resource_densities, second.resource_densities)
        assert [plan.to_dict() for plan in first.entities] == [plan.to_dict() for plan in second.entities]

    def test_small_land_map(self, small_land_config: MapGeneratorConfig) -> None:
        """A land map has spawns, forests and resources."""
        result = generate_map(small_land_config)
        assert len(result.entities_of_type("mpspawn")) == 2
        trees = [plan for plan in result.entities if plan.type.startswith("t")]
        assert trees
        assert result.resource_value > 0
        assert result.playable_area.any()
        # Resources only lie on playable cells
        assert not (result.resource_types[~result.playable_area]).any()

    def test_seed_changes_map(self, small_land_config: MapGeneratorConfig) -> None:
        first = generate_map(small_land_config)
        second = generate_map(small_land_config.model_copy(update={"seed": 124}))
        assert [plan.to_dict() for plan in first.entities] != [plan.to_dict() for plan in second.entities]


def coastal_config(seed: int, **symmetry) -> MapGeneratorConfig:
    return MapGeneratorConfig.model_validate(
        {
            "seed": seed,
            "width": 80,
            "height": 80,
            "symmetry": symmetry,
            "terrain": {"water": 0.3, "mountains": 0.3},
        }
    )


@pytest.fixture(scope="module")
def coastal_maps() -> list[GenerationResult]:
    """Two-way symmetric 80x80 maps with sea, mountains and roads."""
    return [generate_map(coastal_config(seed)) for seed in (1, 2, 3)]


def category_ids(catalog: TerrainCatalog, category: str) -> list[int]:
    return [template.id for template in catalog.templates_in_category(category)]


class TestTerrainStages:
    """Tests for maps that run every terrain stage."""

    def test_coast_cliffs_and_roads_tiled(self, coastal_maps: list[GenerationResult]) -> None:
        """Beaches line every map; cliffs and roads appear across the set."""
        catalog = temperate_catalog()
        for result in coastal_maps:
            assert np.isin(result.tiles, category_ids(catalog, "Beach")).any()
            assert (result.tiles == catalog.water_tile).any()
        assert any(np.isin(result.tiles, category_ids(catalog, "Cliffs")).any() for result in coastal_maps)
        assert any(np.isin(result.tiles, category_ids(catalog, "Road")).any() for result in coastal_maps)

    def test_water_fills_sea_side(self, coastal_maps: list[GenerationResult]) -> None:
        """Water lies on the sea side of the coastline, never inland."""
        catalog = temperate_catalog()
        for result in coastal_maps:
            water = result.tiles == catalog.water_tile
            land = result.tiles == catalog.land_tile
            # Beach paths may stray a few cells from the planned coastline
            inland = ndimage.distance_transform_cdt(result.land_plan, metric="chessboard") >= 5
            offshore = ndimage.distance_transform_cdt(~result.land_plan, metric="chessboard") >= 5
            assert inland.any()
            assert offshore.any()
            assert not water[inland].any()
            assert not land[offshore].any()

    def test_placements_are_symmetric(self, coastal_maps: list[GenerationResult]) -> None:
        """Spawns, mines and buildings come in rotated pairs."""
        for result in coastal_maps:
            placed = {
                (plan.type, frozenset(plan.footprint()))
                for plan in result.entities
                if not plan.type.startswith("t")
            }
            assert len(result.entities_of_type("mpspawn")) == 2
            for entity_type, footprint in placed:
                rotated = frozenset((79 - x, 79 - y) for x, y in footprint)
                assert (entity_type, rotated) in placed

    def test_enforced_mirror_symmetry(self) -> None:
        """Open cells that differ from their mirror image are covered by trees."""
        config = coastal_config(4, rotations=1, mirror=Mirror.LEFT_MATCHES_RIGHT, enforce=2)
        config.roads.roads = False
        config.terrain.deny_walled_areas = False
        catalog = temperate_catalog()
        result = generate_map(config, catalog)

        terrain = catalog.terrain_index_grid(result.tiles, result.tile_indices)
        open_terrain = np.isin(terrain, [catalog.terrain_index(name) for name in ("Beach", "Clear", "Rough")])
        mismatched = open_terrain & (terrain != terrain[:, ::-1])
        covered = np.zeros(terrain.shape, dtype=bool)
        for plan in result.entities:
            if plan.type.startswith("t"):
                for x, y in plan.footprint():
                    if 0 <= x < 80 and 0 <= y < 80:
                        covered[y, x] = True
        assert not (mismatched & ~covered).any()
