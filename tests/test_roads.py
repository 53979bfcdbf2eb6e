"""Tests for road planning."""

import numpy as np
import pytest

from mapgen.roads import (
    deduplicate_and_normalize,
    deflate_space,
    direction_map_to_point_arrays,
    inertially_extend,
    label_holes,
    plan_roads,
    remove_junctions,
    shrink_point_array,
)
from mapgen.types import MASK_D, MASK_L, MASK_R, MASK_U


class TestLabelHoles:
    """Tests for hole labelling."""

    def test_counts_separate_holes(self) -> None:
        """Each 4-connected non-space area gets its own id."""
        space = np.ones((5, 5), dtype=bool)
        space[0, 0] = False
        space[4, 4] = False
        space[3, 4] = False
        holes, count = label_holes(space)
        assert count == 2
        assert holes[0, 0] == 1
        assert holes[3, 4] == holes[4, 4] == 2
        assert holes[2, 2] == 0

    def test_diagonal_cells_are_separate(self) -> None:
        """Diagonal contact does not join holes."""
        space = np.ones((3, 3), dtype=bool)
        space[0, 0] = False
        space[1, 1] = False
        _, count = label_holes(space)
        assert count == 2


class TestDeflateSpace:
    """Tests for Voronoi border extraction."""

    def test_shape(self) -> None:
        """The direction map covers grid corners."""
        space = np.ones((6, 9), dtype=bool)
        assert deflate_space(space, True).shape == (7, 10)

    def test_single_hole_has_no_borders(self) -> None:
        """With one hole there is only one region."""
        space = np.ones((6, 6), dtype=bool)
        space[0, 0] = False
        assert not deflate_space(space, False).any()

    def test_two_holes_split_the_map(self) -> None:
        """Two holes on either side leave a border between them."""
        space = np.ones((6, 8), dtype=bool)
        space[:, 0] = False
        space[:, 7] = False
        deflated = deflate_space(space, False)
        assert deflated[3, 4] & (MASK_U | MASK_D)
        assert not deflated[3, 1]


class TestLines:
    """Tests for turning direction maps into lines."""

    def test_straight_line_found_from_both_ends(self) -> None:
        """An open line is walked once from each end."""
        direction_map = np.zeros((3, 5), dtype=np.uint8)
        direction_map[1, 1] = MASK_R
        direction_map[1, 2] = MASK_L | MASK_R
        direction_map[1, 3] = MASK_L
        lines = direction_map_to_point_arrays(direction_map)
        assert lines == [[(1, 1), (2, 1), (3, 1)], [(3, 1), (2, 1), (1, 1)]]
        assert len(deduplicate_and_normalize(lines, 4, 2)) == 1

    def test_remove_junctions(self) -> None:
        """Corners joining three lines are cut out."""
        direction_map = np.zeros((5, 5), dtype=np.uint8)
        direction_map[2, 2] = MASK_L | MASK_R | MASK_D
        direction_map[2, 1] = MASK_R
        direction_map[2, 3] = MASK_L
        direction_map[3, 2] = MASK_U
        cleaned = remove_junctions(direction_map)
        assert cleaned[2, 2] == 0
        assert cleaned[2, 1] == 0
        assert cleaned[3, 2] == 0

    def test_shrink(self) -> None:
        """Both ends are trimmed."""
        points = [(x, 0) for x in range(20)]
        assert shrink_point_array(points, 4, 12) == points[4:16]
        assert shrink_point_array(points, 5, 12) is None
        with pytest.raises(ValueError):
            shrink_point_array(points, 1, 1)

    def test_inertial_extension(self) -> None:
        """Ends grow straight on."""
        points = [(x, 0) for x in range(11)]
        extended = inertially_extend(points, 2, 8)
        assert extended[:2] == [(-2, 0), (-1, 0)]
        assert extended[-2:] == [(11, 0), (12, 0)]
        assert len(extended) == 15


class TestPlanRoads:
    """Tests for full road planning."""

    def test_no_space_no_roads(self) -> None:
        """Without open space there are no roads."""
        assert plan_roads(np.zeros((20, 20), dtype=bool), 3) == []

    def test_roads_are_cardinal(self) -> None:
        """Planned roads only take cardinal steps."""
        space = np.ones((40, 40), dtype=bool)
        space[18:22, 8:12] = False
        space[18:22, 28:32] = False
        for road in plan_roads(space, 2):
            for (ax, ay), (bx, by) in zip(road, road[1:]):
                assert abs(bx - ax) + abs(by - ay) == 1
