"""Tests for entity plans and rules."""

import numpy as np
import pytest

from mapgen.plans import EntityInfo, EntityPlan, EntityRules, reserve_for_entities


class TestEntityRules:
    """Tests for the entity registry."""

    def test_known_types(self, rules: EntityRules) -> None:
        """Default rules include trees, husks, mines and spawns."""
        for name in ("t01", "t01.husk", "mine", "gmine", "mpspawn", "oilb"):
            assert name in rules

    def test_unknown_type_raises(self, rules: EntityRules) -> None:
        """Unknown types are rejected."""
        with pytest.raises(ValueError, match="unknown type"):
            rules.plan("nuke")

    def test_plan_defaults(self, rules: EntityRules) -> None:
        """New plans are neutral with no zoning."""
        plan = rules.plan("mine", (3, 4))
        assert plan.owner == "Neutral"
        assert plan.zoning_radius == 0.0
        assert plan.location == (3, 4)


class TestEntityPlan:
    """Tests for EntityPlan."""

    def test_footprint_follows_location(self) -> None:
        """Footprints are offset by the location."""
        plan = EntityPlan(EntityInfo("hut", ((0, 0), (1, 0)), building=True), (5, 6))
        assert plan.footprint() == [(5, 6), (6, 6)]

    def test_empty_footprint_is_location(self) -> None:
        """Entities without a footprint occupy their own cell."""
        plan = EntityPlan(EntityInfo("flag"), (2, 2))
        assert plan.footprint() == [(2, 2)]

    def test_center_location(self, rules: EntityRules) -> None:
        """Buildings center on their footprint, others on their cell."""
        assert rules.plan("fcom", (2, 2)).center_location == (3.0, 3.0)
        assert rules.plan("miss", (0, 0)).center_location == (1.5, 1.0)
        assert rules.plan("mine", (2, 2)).center_location == (2.5, 2.5)

    def test_set_center_location(self, rules: EntityRules) -> None:
        """Setting the center moves the location to match."""
        plan = rules.plan("fcom")
        plan.center_location = (10.0, 7.0)
        assert plan.location == (9, 6)

    def test_align_footprint(self, rules: EntityRules) -> None:
        """Aligning puts the first footprint cell at the origin."""
        plan = rules.plan("t01").align_footprint()
        assert plan.location == (0, -1)
        assert plan.footprint() == [(0, 0)]

    def test_clone_is_independent(self, rules: EntityRules) -> None:
        """Clones can be moved without affecting the original."""
        plan = rules.plan("mine", (1, 1), zoning_radius=2.0)
        clone = plan.clone()
        clone.location = (5, 5)
        assert plan.location == (1, 1)
        assert clone.zoning_radius == 2.0

    def test_to_dict(self, rules: EntityRules) -> None:
        """Plans serialize to plain dicts."""
        assert rules.plan("gmine", (4, 2)).to_dict() == {"type": "gmine", "x": 4, "y": 2, "owner": "Neutral"}


class TestReserveForEntities:
    """Tests for reserving entity space."""

    def test_footprint_and_zoning(self, rules: EntityRules) -> None:
        """Footprints and zoning discs are both reserved."""
        matrix = np.ones((7, 7), dtype=bool)
        plans = [rules.plan("mine", (3, 3), zoning_radius=1.0), rules.plan("fcom", (0, 5))]
        reserve_for_entities(matrix, plans, lambda _old: False)
        assert not matrix[3, 3]
        assert not matrix[2, 3]
        assert not matrix[6, 1]
        assert matrix[0, 0]
        assert np.count_nonzero(~matrix) == 9

    def test_off_map_cells_ignored(self, rules: EntityRules) -> None:
        """Footprint cells outside the matrix are skipped."""
        matrix = np.zeros((3, 3), dtype=np.int32)
        reserve_for_entities(matrix, [rules.plan("fcom", (2, 2))], lambda old: old + 1)
        assert matrix.sum() == 1
