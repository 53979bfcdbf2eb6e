"""Tests for grid direction primitives."""

import pytest

from mapgen.types import (
    MASK_D,
    MASK_R,
    SPREAD8,
    Direction,
    count_directions,
    direction_from_offset,
    direction_mask,
    direction_to_string,
    mask_to_direction,
    non_diagonal_direction,
    reverse_direction,
)


class TestDirection:
    """Tests for direction helpers."""

    def test_offsets_map_to_directions(self) -> None:
        """Offset signs pick the direction."""
        assert direction_from_offset(3, 0) == Direction.R
        assert direction_from_offset(2, 5) == Direction.RD
        assert direction_from_offset(0, -1) == Direction.U
        assert direction_from_offset(-4, -4) == Direction.LU
        assert direction_from_offset(0, 0) == Direction.NONE

    def test_reverse(self) -> None:
        """Reversing turns a direction around."""
        assert reverse_direction(Direction.R) == Direction.L
        assert reverse_direction(Direction.RD) == Direction.LU
        assert reverse_direction(Direction.U) == Direction.D
        assert reverse_direction(Direction.NONE) == Direction.NONE

    def test_strings(self) -> None:
        """Directions render as connector suffixes."""
        assert direction_to_string(Direction.LU) == "LU"
        assert direction_to_string(Direction.NONE) == "None"

    def test_spread8_in_direction_order(self) -> None:
        """The eight-way spread starts right and turns clockwise."""
        assert SPREAD8[0] == (1, 0)
        assert SPREAD8[2] == (0, 1)
        assert len(SPREAD8) == 8


class TestNonDiagonalDirection:
    """Tests for snapping offsets to cardinal directions."""

    def test_cardinals(self) -> None:
        """Mostly horizontal or vertical offsets snap to their axis."""
        assert non_diagonal_direction(5, 1) == Direction.R
        assert non_diagonal_direction(-1, 4) == Direction.D
        assert non_diagonal_direction(-3, 0) == Direction.L
        assert non_diagonal_direction(0, -2) == Direction.U

    def test_diagonals_resolve_clockwise(self) -> None:
        """Exact diagonals pick the next cardinal clockwise."""
        assert non_diagonal_direction(1, 1) == Direction.D
        assert non_diagonal_direction(-1, 1) == Direction.L
        assert non_diagonal_direction(-1, -1) == Direction.U
        assert non_diagonal_direction(1, -1) == Direction.R

    def test_zero_offset_raises(self) -> None:
        """A zero offset has no direction."""
        with pytest.raises(ValueError):
            non_diagonal_direction(0, 0)


class TestDirectionMasks:
    """Tests for direction bit masks."""

    def test_mask_bits(self) -> None:
        """Each direction has its own bit."""
        assert direction_mask(Direction.R) == MASK_R
        assert direction_mask(Direction.D) == MASK_D
        assert direction_mask(Direction.NONE) == 0

    def test_count(self) -> None:
        """Counting ignores bits above the eight directions."""
        assert count_directions(MASK_R | MASK_D) == 2
        assert count_directions(0x100) == 0

    def test_single_direction_mask(self) -> None:
        """Only masks with exactly one bit map back to a direction."""
        assert mask_to_direction(MASK_D) == Direction.D
        assert mask_to_direction(MASK_R | MASK_D) == Direction.NONE
        assert mask_to_direction(0) == Direction.NONE
