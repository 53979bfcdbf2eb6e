"""Tests for playable region detection."""

import numpy as np
import pytest

from mapgen.catalog import TerrainCatalog
from mapgen.exceptions import NoPlayableRegionError
from mapgen.plans import EntityRules
from mapgen.regions import (
    Playability,
    Region,
    external_circle_mask,
    find_playable_regions,
    largest_region,
    playability_table,
    playable_area,
)
from mapgen.tilemap import TileGrid


class TestPlayabilityTable:
    """Tests for tile playability."""

    def test_classes(self, catalog: TerrainCatalog) -> None:
        """Open terrain is playable, rock is not."""
        table = playability_table(catalog)
        assert table[catalog.land_tile, 0] == Playability.PLAYABLE
        assert table[catalog.water_tile, 0] == Playability.PLAYABLE
        assert table[200, 0] == Playability.PLAYABLE
        assert table[104, 0] == Playability.UNPLAYABLE
        assert table[300, 0] == Playability.UNPLAYABLE
        assert table[310, 0] == Playability.PLAYABLE


class TestFindPlayableRegions:
    """Tests for region flooding."""

    def test_open_map_is_one_region(self, land_grid: TileGrid, catalog: TerrainCatalog) -> None:
        """A map of plain land is one region."""
        region_mask, regions, _ = find_playable_regions(land_grid, [], playability_table(catalog))
        assert len(regions) == 1
        assert regions[0].playable_area == 100
        assert (region_mask == 1).all()

    def test_wall_splits_regions(self, walled_grid: TileGrid, catalog: TerrainCatalog) -> None:
        """Regions never cross unplayable cells."""
        region_mask, regions, playability = find_playable_regions(walled_grid, [], playability_table(catalog))
        assert [region.playable_area for region in regions] == [50, 40]
        assert (region_mask[:, 5] == 0).all()
        assert (region_mask[:, :5] == 1).all()
        assert (region_mask[:, 6:] == 2).all()
        assert (playability[:, 5] == Playability.UNPLAYABLE).all()

    def test_entities_demote_cells(self, land_grid: TileGrid, catalog: TerrainCatalog, rules: EntityRules) -> None:
        """Cells under entities become partial and stop the flood."""
        plans = [rules.plan("mine", (0, y)) for y in range(10)]
        region_mask, regions, playability = find_playable_regions(land_grid, plans, playability_table(catalog))
        assert (playability[:, 0] == Playability.PARTIAL).all()
        assert len(regions) == 1
        assert regions[0].playable_area == 90
        assert regions[0].area == 100

    def test_partial_strip_does_not_bridge(
        self, land_grid: TileGrid, catalog: TerrainCatalog, rules: EntityRules
    ) -> None:
        """A partial strip joins the first region to reach it but links nothing."""
        plans = [rules.plan("mine", (5, y)) for y in range(10)]
        region_mask, regions, playability = find_playable_regions(land_grid, plans, playability_table(catalog))
        assert (playability[:, 5] == Playability.PARTIAL).all()
        assert len(regions) == 2
        assert (region_mask[:, :6] == 1).all()
        assert (region_mask[:, 6:] == 2).all()
        assert (regions[0].area, regions[0].playable_area) == (60, 50)
        assert (regions[1].area, regions[1].playable_area) == (40, 40)

    def test_largest_region(self, walled_grid: TileGrid, catalog: TerrainCatalog) -> None:
        """The region with the most playable area wins."""
        region_mask, regions, playability = find_playable_regions(walled_grid, [], playability_table(catalog))
        largest = largest_region(regions, False)
        assert largest.id == 1
        area = playable_area(playability, region_mask, largest)
        assert area.sum() == 50
        assert not area[:, 5:].any()

    def test_external_regions_excluded(self, walled_grid: TileGrid, catalog: TerrainCatalog) -> None:
        """Regions touching the outer circle can be excluded."""
        _, regions, _ = find_playable_regions(walled_grid, [], playability_table(catalog))
        assert all(region.external_circle for region in regions)
        with pytest.raises(NoPlayableRegionError):
            largest_region(regions, True)

    def test_no_regions(self) -> None:
        """An empty region list has no largest region."""
        with pytest.raises(NoPlayableRegionError):
            largest_region([], False)

    def test_ties_keep_first(self) -> None:
        """Earlier regions win ties."""
        first, second = Region(1), Region(2)
        first.playable_area = second.playable_area = 5
        assert largest_region([first, second], False) is first


class TestExternalCircle:
    """Tests for the outer circle mask."""

    def test_corners_outside(self) -> None:
        """Corners lie outside the inscribed circle, the center inside."""
        mask = external_circle_mask(12, 12)
        assert mask[0, 0]
        assert mask[11, 11]
        assert not mask[6, 6]
