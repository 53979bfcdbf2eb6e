"""Entity placement plans and the footprint rules they are placed by."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from numpy.typing import NDArray

from .fields import reserve_circle_in_place
from .types import Point

FloatPoint = tuple[float, float]


@dataclass(frozen=True)
class EntityInfo:
    """Placement rules for one entity type.

    footprint lists occupied cells relative to the entity's location; an empty
    footprint means the entity occupies its location only. Buildings are
    centered on the bounding box of their footprint, everything else on the
    middle of its location cell.
    """

    name: str
    footprint: tuple[Point, ...] = ()
    building: bool = False

    def center_offset(self) -> FloatPoint:
        if not self.building or not self.footprint:
            return (0.5, 0.5)
        xs = [x for x, _ in self.footprint]
        ys = [y for _, y in self.footprint]
        return ((min(xs) + max(xs) + 1) / 2.0, (min(ys) + max(ys) + 1) / 2.0)


class EntityPlan:
    """A planned entity: type, location, owner and zoning radius."""

    def __init__(
        self,
        info: EntityInfo,
        location: Point = (0, 0),
        owner: str = "Neutral",
        zoning_radius: float = 0.0,
    ):
        self.info = info
        self.location = location
        self.owner = owner
        self.zoning_radius = zoning_radius

    @property
    def type(self) -> str:
        return self.info.name

    def footprint(self) -> list[Point]:
        """Cells occupied by the entity at its current location."""
        x, y = self.location
        if not self.info.footprint:
            return [(x, y)]
        return [(x + fx, y + fy) for fx, fy in self.info.footprint]

    def align_footprint(self) -> "EntityPlan":
        """Move the plan so its top-most, left-most footprint cell is at (0, 0)."""
        first_x, first_y = min(self.footprint(), key=lambda cell: (cell[1], cell[0]))
        x, y = self.location
        self.location = (x - first_x, y - first_y)
        return self

    def center_offset(self) -> FloatPoint:
        return self.info.center_offset()

    @property
    def center_location(self) -> FloatPoint:
        ox, oy = self.center_offset()
        return (self.location[0] + ox, self.location[1] + oy)

    @center_location.setter
    def center_location(self, value: FloatPoint) -> None:
        ox, oy = self.center_offset()
        self.location = (int(round(value[0] - ox)), int(round(value[1] - oy)))

    def clone(self) -> "EntityPlan":
        return EntityPlan(self.info, self.location, self.owner, self.zoning_radius)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "x": self.location[0],
            "y": self.location[1],
            "owner": self.owner,
        }

    def __repr__(self) -> str:
        return f"EntityPlan({self.type!r}, location={self.location}, owner={self.owner!r})"


class EntityRules:
    """Registry of known entity types."""

    def __init__(self, infos: Iterable[EntityInfo]):
        self._infos = {info.name: info for info in infos}

    def __contains__(self, name: str) -> bool:
        return name in self._infos

    def __getitem__(self, name: str) -> EntityInfo:
        try:
            return self._infos[name]
        except KeyError:
            raise ValueError(f"Entity of unknown type {name}") from None

    def names(self) -> list[str]:
        return list(self._infos)

    def plan(self, name: str, location: Point = (0, 0), zoning_radius: float = 0.0) -> EntityPlan:
        """A new neutral plan for a registered entity type.

        Raises:
            ValueError: If the type is unknown.
        """
        return EntityPlan(self[name], location, zoning_radius=zoning_radius)


def reserve_for_entities(
    matrix: NDArray[Any], plans: Iterable[EntityPlan], set_to: Callable[[Any], Any]
) -> None:
    """Overwrite every cell covered by a plan's footprint or zoning disc.

    set_to maps old values to new ones, for single cells and for arrays.
    """
    height, width = matrix.shape
    for plan in plans:
        for x, y in plan.footprint():
            if 0 <= x < width and 0 <= y < height:
                matrix[y, x] = set_to(matrix[y, x])
        if plan.zoning_radius > 0.0:
            reserve_circle_in_place(
                matrix,
                plan.location,
                plan.zoning_radius,
                lambda _r_sq, old: set_to(old),
            )


TREE_FOOTPRINTS: dict[str, tuple[Point, ...]] = {
    "t01": ((0, 1),),
    "t02": ((0, 1),),
    "t03": ((0, 1),),
    "t05": ((0, 1),),
    "t06": ((0, 1),),
    "t07": ((0, 1),),
    "t08": ((0, 1),),
    "t10": ((0, 1), (1, 1)),
    "t11": ((0, 1), (1, 1)),
    "t12": ((0, 1),),
    "t13": ((0, 1),),
    "t14": ((0, 1),),
    "t15": ((0, 1),),
    "t16": ((0, 1),),
    "t17": ((0, 1),),
    "tc01": ((0, 1), (1, 1)),
    "tc02": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "tc03": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "tc04": ((0, 1), (1, 1), (2, 1), (0, 2)),
    "tc05": ((2, 0), (0, 1), (1, 1), (2, 1), (1, 2), (2, 2)),
}

BUILDING_FOOTPRINTS: dict[str, tuple[Point, ...]] = {
    "fcom": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "hosp": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "bio": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "oilb": ((0, 0), (1, 0), (0, 1), (1, 1)),
    "miss": ((0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1)),
}


def default_entity_rules() -> EntityRules:
    """Trees, tree husks, mines, spawns and neutral tech buildings."""
    infos = []
    for name, footprint in TREE_FOOTPRINTS.items():
        infos.append(EntityInfo(name, footprint, building=True))
        infos.append(EntityInfo(f"{name}.husk", footprint, building=True))
    infos.append(EntityInfo("mine", ((0, 0),)))
    infos.append(EntityInfo("gmine", ((0, 0),)))
    infos.append(EntityInfo("mpspawn"))
    for name, footprint in BUILDING_FOOTPRINTS.items():
        infos.append(EntityInfo(name, footprint, building=True))
    return EntityRules(infos)
