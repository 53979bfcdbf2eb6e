"""Grid direction primitives shared by contour tracing, tiling and roads."""

from enum import IntEnum

Point = tuple[int, int]


class Direction(IntEnum):
    """Eight-way grid direction. +x is right, +y is down."""

    NONE = -1
    R = 0
    RD = 1
    D = 2
    LD = 3
    L = 4
    LU = 5
    U = 6
    RU = 7


DIRECTION_DELTAS: dict[Direction, Point] = {
    Direction.R: (1, 0),
    Direction.RD: (1, 1),
    Direction.D: (0, 1),
    Direction.LD: (-1, 1),
    Direction.L: (-1, 0),
    Direction.LU: (-1, -1),
    Direction.U: (0, -1),
    Direction.RU: (1, -1),
}

# Cardinal neighbours, in the order floods visit them.
SPREAD4: tuple[Point, ...] = ((1, 0), (0, 1), (-1, 0), (0, -1))

# All eight neighbours, in direction order.
SPREAD8: tuple[Point, ...] = tuple(DIRECTION_DELTAS[d] for d in sorted(DIRECTION_DELTAS))

MASK_R = 1 << Direction.R
MASK_RD = 1 << Direction.RD
MASK_D = 1 << Direction.D
MASK_LD = 1 << Direction.LD
MASK_L = 1 << Direction.L
MASK_LU = 1 << Direction.LU
MASK_U = 1 << Direction.U
MASK_RU = 1 << Direction.RU


def direction_mask(direction: Direction) -> int:
    """Bit mask for a direction (0 for NONE)."""
    if direction == Direction.NONE:
        return 0
    return 1 << direction


def direction_from_offset(dx: int, dy: int) -> Direction:
    """Direction of an offset by the signs of its components.

    Returns Direction.NONE for a zero offset.
    """
    if dx > 0:
        if dy > 0:
            return Direction.RD
        if dy < 0:
            return Direction.RU
        return Direction.R
    if dx < 0:
        if dy > 0:
            return Direction.LD
        if dy < 0:
            return Direction.LU
        return Direction.L
    if dy > 0:
        return Direction.D
    if dy < 0:
        return Direction.U
    return Direction.NONE


def non_diagonal_direction(dx: int, dy: int) -> Direction:
    """Closest cardinal direction of a non-zero offset.

    Exact diagonals resolve clockwise (RD -> D, LD -> L, LU -> U, RU -> R).

    Raises:
        ValueError: If the offset is zero.
    """
    if dx - dy > 0 and dx + dy >= 0:
        return Direction.R
    if dy + dx > 0 and dy - dx >= 0:
        return Direction.D
    if -dx + dy > 0 and -dx - dy >= 0:
        return Direction.L
    if -dy - dx > 0 and -dy + dx >= 0:
        return Direction.U
    raise ValueError(f"No direction for offset ({dx}, {dy})")


def reverse_direction(direction: Direction) -> Direction:
    if direction == Direction.NONE:
        return Direction.NONE
    return Direction(direction ^ 4)


def direction_to_string(direction: Direction) -> str:
    """Connector suffix for a direction, e.g. "R" or "LU"."""
    if direction == Direction.NONE:
        return "None"
    return direction.name


def count_directions(mask: int) -> int:
    """Number of direction bits set in a mask."""
    return bin(mask & 0xFF).count("1")


def mask_to_direction(mask: int) -> Direction:
    """The single direction in a mask, or NONE if zero or several are set."""
    if count_directions(mask) != 1:
        return Direction.NONE
    return Direction((mask & 0xFF).bit_length() - 1)
