"""Resource fields: where ore and gems lie and how dense they are."""

import math
from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import NDArray
from structlog.typing import FilteringBoundLogger

from .fields import circle_distances_squared
from .plans import EntityPlan
from .priority import PriorityArray
from .symmetry import Mirror, projection_count, rotate_and_mirror_grid_square


@dataclass(frozen=True)
class ResourceType:
    """A harvestable resource and the mine entity that seeds it."""

    name: str
    index: int
    value_per_unit: int
    max_density: int
    mine: str

    def density(self, adjacent: int) -> int:
        """Density of a cell with `adjacent` same-type cells in its 3x3 block."""
        return max(self.max_density * adjacent // 9, 1)

    def cell_value(self, density: int) -> int:
        # density + 1 matches how the game values a cell
        return self.value_per_unit * (density + 1)


ORE = ResourceType("Ore", 1, 25, 12, "mine")
GEMS = ResourceType("Gems", 2, 50, 3, "gmine")
RESOURCE_TYPES = (ORE, GEMS)
NO_RESOURCE = 0


class ResourceLayout:
    """Resource type and density per cell, with the value they add up to."""

    def __init__(self, width: int, height: int, target: int):
        self.types: NDArray[np.uint8] = np.zeros((height, width), dtype=np.uint8)
        self.densities: NDArray[np.uint8] = np.zeros((height, width), dtype=np.uint8)
        self.target = target
        self.total_value = 0

    @property
    def shortfall(self) -> int:
        return max(self.target - self.total_value, 0)

    def cell_value(self, x: int, y: int) -> int:
        resource = resource_by_index(int(self.types[y, x]))
        if resource is None:
            return 0
        return resource.cell_value(int(self.densities[y, x]))

    def value_grid(self) -> NDArray[np.int32]:
        """Value of every cell."""
        values = np.zeros(self.types.shape, dtype=np.int32)
        for resource in RESOURCE_TYPES:
            cells = self.types == resource.index
            values[cells] = resource.value_per_unit * (self.densities[cells].astype(np.int32) + 1)
        return values


def resource_by_index(index: int) -> ResourceType | None:
    for resource in RESOURCE_TYPES:
        if resource.index == index:
            return resource
    return None


def resource_value_field(
    ore_noise: NDArray[np.float32],
    eligible: NDArray[np.bool_],
    plans: list[EntityPlan],
    uniformity: float,
    spawn_region_size: int,
    spawn_resource_bias: float,
) -> NDArray[np.float32]:
    """Desirability of each cell as a resource site.

    The ore noise, rescaled to 0..1, is blended toward a flat 1 by
    uniformity. Within spawn_region_size of a spawn the value ramps up
    linearly to spawn_resource_bias times the base. Ineligible cells and
    every entity footprint score 0.
    """
    low = float(ore_noise.min())
    high = float(ore_noise.max())
    if high > low:
        pattern = (ore_noise.astype(np.float64) - low) / (high - low)
    else:
        pattern = np.ones(ore_noise.shape, dtype=np.float64)
    values = uniformity + (1.0 - uniformity) * pattern

    if spawn_region_size > 0:
        boost = np.ones(values.shape, dtype=np.float64)
        for plan in plans:
            if plan.type != "mpspawn":
                continue
            distance = np.sqrt(circle_distances_squared(values.shape, plan.location))
            ramp = np.clip(1.0 - distance / spawn_region_size, 0.0, 1.0)
            boost = np.maximum(boost, 1.0 + (spawn_resource_bias - 1.0) * ramp)
        values *= boost

    values = np.where(eligible, values, 0.0).astype(np.float32)
    height, width = values.shape
    for plan in plans:
        for x, y in plan.footprint():
            if 0 <= x < width and 0 <= y < height:
                values[y, x] = 0.0
    return values


def nearest_mine_types(
    shape: tuple[int, int], plans: list[EntityPlan], reach: float
) -> NDArray[np.uint8]:
    """Resource index of the closest mine within reach, ore elsewhere."""
    types = np.full(shape, ORE.index, dtype=np.uint8)
    best = np.full(shape, math.inf)
    reach_sq = reach * reach
    mines = {resource.mine: resource for resource in RESOURCE_TYPES}
    for plan in plans:
        resource = mines.get(plan.type)
        if resource is None:
            continue
        distance_sq = circle_distances_squared(shape, plan.location)
        closer = (distance_sq < best) & (distance_sq <= reach_sq)
        types[closer] = resource.index
        best[closer] = distance_sq[closer]
    return types


def place_resources(
    values: NDArray[np.float32],
    types: NDArray[np.uint8],
    target: int,
    rotations: int,
    mirror: Mirror,
    log: FilteringBoundLogger | None = None,
) -> ResourceLayout:
    """Greedily fill the most valuable cells until the target value is met.

    Each step takes the best remaining cell and puts its resource there and
    on every symmetric copy, then re-derives the density of the 3x3 block
    around each changed cell. The value gained is subtracted from what is
    left of the target. Running out of cells leaves a logged shortfall.

    Args:
        values: Desirability per cell; cells scoring 0 are never used.
        types: Resource index to place per cell.
        target: Total value wanted, over all symmetric copies.
        rotations: Rotational symmetry.
        mirror: Mirror axis.
        log: Diagnostic logger.

    Returns:
        The resulting layout.
    """
    if log is None:
        log = structlog.get_logger()
    height, width = values.shape
    layout = ResourceLayout(width, height, target)

    priorities = PriorityArray(width * height)
    for n in np.flatnonzero(values.ravel() > 0).tolist():
        priorities[n] = -float(values.flat[n])

    remaining = target
    while remaining > 0:
        n = priorities.min_index()
        if priorities[n] == math.inf:
            break
        y, x = divmod(n, width)
        resource_index = int(types[y, x])

        changed = []
        for px, py in rotate_and_mirror_grid_square((x, y), (width, height), rotations, mirror):
            if not (0 <= px < width and 0 <= py < height):
                continue
            pn = py * width + px
            if priorities[pn] == math.inf:
                continue
            priorities[pn] = math.inf
            layout.types[py, px] = resource_index
            changed.append((px, py))

        before = 0
        after = 0
        affected = {
            (ax, ay)
            for cx, cy in changed
            for ax in range(max(cx - 1, 0), min(cx + 2, width))
            for ay in range(max(cy - 1, 0), min(cy + 2, height))
            if layout.types[ay, ax] != NO_RESOURCE
        }
        for ax, ay in sorted(affected):
            resource = resource_by_index(int(layout.types[ay, ax]))
            if (ax, ay) not in changed:
                before += resource.cell_value(int(layout.densities[ay, ax]))
            block = layout.types[max(ay - 1, 0):ay + 2, max(ax - 1, 0):ax + 2]
            density = resource.density(int(np.count_nonzero(block == resource.index)))
            layout.densities[ay, ax] = density
            after += resource.cell_value(density)

        gained = after - before
        layout.total_value += gained
        remaining -= gained

    if layout.shortfall > 0:
        log.warning("resource_target_missed", target=target, placed=layout.total_value, shortfall=layout.shortfall)
    else:
        log.debug("resources_placed", target=target, placed=layout.total_value)
    return layout


def resource_target(resources_per_player: int, players: int, rotations: int, mirror: Mirror) -> int:
    """Total value wanted over the whole map."""
    return resources_per_player * players * projection_count(rotations, mirror)
