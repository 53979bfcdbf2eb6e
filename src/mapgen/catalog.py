"""Terrain template catalog: typed templates, segments and lookups.

A catalog is validated once when it is built or loaded. Afterwards every
template is addressed by its small integer id and every tile's terrain type
is available through a dense lookup table.
"""

import tomllib
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from .types import Direction, direction_to_string

NO_TERRAIN = 255


def matches_type(segment_type: str, matcher: str) -> bool:
    """Whether a connector type such as "Beach.R" matches "Beach" or "Beach.R"."""
    return segment_type == matcher or segment_type.startswith(f"{matcher}.")


class TemplateSegment(BaseModel):
    """A chainable sub-path through a template.

    Points are template-relative grid corners; start and end carry connector
    types like "Cliff.D".
    """

    start: str = Field(description="Connector type at the first point")
    end: str = Field(description="Connector type at the last point")
    points: list[tuple[int, int]] = Field(min_length=2, description="Corner points, in order")

    @field_validator("points")
    @classmethod
    def _no_repeated_points(cls, points: list[tuple[int, int]]) -> list[tuple[int, int]]:
        for previous, current in zip(points, points[1:]):
            if previous == current:
                raise ValueError("segment has duplicate points in sequence")
        return points

    def has_start_type(self, matcher: str) -> bool:
        return matches_type(self.start, matcher)

    def has_end_type(self, matcher: str) -> bool:
        return matches_type(self.end, matcher)


class TerrainTemplate(BaseModel):
    """A rectangular pattern of tiles.

    tiles holds one terrain type name per index (row-major), or None where the
    template leaves the cell untouched.
    """

    id: int = Field(ge=0, le=65535, description="Template id")
    size: tuple[int, int] = Field(description="(width, height) in cells")
    tiles: list[str | None] = Field(description="Terrain type per tile index")
    categories: list[str] = Field(default_factory=list, description="Category tags")
    pick_any: bool = Field(default=False, description="Tiles are interchangeable variants")
    segments: list[TemplateSegment] = Field(default_factory=list)

    @field_validator("tiles", mode="before")
    @classmethod
    def _empty_strings_are_holes(cls, tiles: list) -> list:
        # TOML has no null
        return [None if tile == "" else tile for tile in tiles]

    @model_validator(mode="after")
    def _check_shape(self) -> "TerrainTemplate":
        width, height = self.size
        if width < 1 or height < 1:
            raise ValueError(f"template {self.id} has an empty size")
        if not self.pick_any and len(self.tiles) != width * height:
            raise ValueError(f"template {self.id} needs {width * height} tiles, got {len(self.tiles)}")
        if self.pick_any and self.segments:
            raise ValueError(f"pick-any template {self.id} cannot have segments")
        if not any(tile is not None for tile in self.tiles):
            raise ValueError(f"template {self.id} has no tiles")
        return self

    @property
    def tile_count(self) -> int:
        return len(self.tiles)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]


class TerrainCatalog(BaseModel):
    """All templates available to a generator, keyed by id."""

    name: str = Field(description="Tileset name")
    land_tile: int = Field(default=255, description="Pick-any template used for plain land")
    water_tile: int = Field(default=1, description="Pick-any template used for open water")
    terrain_types: list[str] = Field(min_length=1, description="Terrain type names, by index")
    templates: list[TerrainTemplate] = Field(default_factory=list)

    _by_id: dict[int, TerrainTemplate] = PrivateAttr(default_factory=dict)
    _type_lookup: NDArray[np.uint8] = PrivateAttr()

    @model_validator(mode="after")
    def _check_references(self) -> "TerrainCatalog":
        if len(self.terrain_types) >= NO_TERRAIN:
            raise ValueError("too many terrain types")
        if len(set(self.terrain_types)) != len(self.terrain_types):
            raise ValueError("terrain type names must be unique")
        known = set(self.terrain_types)
        seen: set[int] = set()
        for template in self.templates:
            if template.id in seen:
                raise ValueError(f"duplicate template id {template.id}")
            seen.add(template.id)
            for tile in template.tiles:
                if tile is not None and tile not in known:
                    raise ValueError(f"template {template.id} uses unknown terrain type {tile!r}")
        for role, template_id in (("land", self.land_tile), ("water", self.water_tile)):
            if template_id not in seen:
                raise ValueError(f"{role} template {template_id} is not in the catalog")
        return self

    def model_post_init(self, __context: object) -> None:
        self._by_id = {template.id: template for template in self.templates}
        type_index = {name: i for i, name in enumerate(self.terrain_types)}
        max_id = max(self._by_id, default=0)
        max_tiles = max((template.tile_count for template in self.templates), default=1)
        lookup = np.full((max_id + 1, max_tiles), NO_TERRAIN, dtype=np.uint8)
        for template in self.templates:
            for index, tile in enumerate(template.tiles):
                if tile is not None:
                    lookup[template.id, index] = type_index.get(tile, NO_TERRAIN)
        self._type_lookup = lookup

    def __contains__(self, template_id: int) -> bool:
        return template_id in self._by_id

    def template(self, template_id: int) -> TerrainTemplate:
        """Look up a template.

        Raises:
            KeyError: If the id is unknown.
        """
        return self._by_id[template_id]

    def terrain_index(self, terrain_type: str) -> int:
        """Index of a terrain type name.

        Raises:
            ValueError: If the name is unknown.
        """
        return self.terrain_types.index(terrain_type)

    def tile_type(self, template_id: int, index: int) -> str | None:
        """Terrain type name of a single tile."""
        return self.template(template_id).tiles[index]

    def terrain_index_grid(
        self, templates: NDArray[np.uint16], indices: NDArray[np.uint8]
    ) -> NDArray[np.uint8]:
        """Terrain type index of every tile in a grid."""
        return self._type_lookup[templates, indices]

    def find_templates(self, start_types: list[str], end_types: list[str] | None = None) -> list[TerrainTemplate]:
        """Templates with a segment running from any start type to any end type.

        Results are ordered by template id.
        """
        if end_types is None:
            end_types = start_types
        found = []
        for template_id in sorted(self._by_id):
            template = self._by_id[template_id]
            for segment in template.segments:
                if any(segment.has_start_type(s) for s in start_types) and any(
                    segment.has_end_type(e) for e in end_types
                ):
                    found.append(template)
                    break
        return found

    def templates_in_category(self, category: str) -> list[TerrainTemplate]:
        return [self._by_id[i] for i in sorted(self._by_id) if category in self._by_id[i].categories]


def load_catalog(path: Path) -> TerrainCatalog:
    """Load a catalog from a TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pydantic.ValidationError: If the catalog is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    with path.open("rb") as f:
        data = tomllib.load(f)
    return TerrainCatalog.model_validate(data)


# Corner points of a single-cell step, placing the cell on the right hand
# side of travel.
_STEP_POINTS: dict[Direction, list[tuple[int, int]]] = {
    Direction.R: [(0, 0), (1, 0)],
    Direction.D: [(1, 0), (1, 1)],
    Direction.L: [(1, 1), (0, 1)],
    Direction.U: [(0, 1), (0, 0)],
}

_TURNS: dict[Direction, tuple[Direction, ...]] = {
    Direction.R: (Direction.R, Direction.U, Direction.D),
    Direction.D: (Direction.D, Direction.R, Direction.L),
    Direction.L: (Direction.L, Direction.D, Direction.U),
    Direction.U: (Direction.U, Direction.L, Direction.R),
}


def _connector_templates(
    base_id: int, start_type: str, end_type: str, terrain_type: str, category: str
) -> list[TerrainTemplate]:
    """One single-cell template per step direction.

    Each accepts arriving from its own direction or either perpendicular.
    """
    templates = []
    for i, step in enumerate((Direction.R, Direction.D, Direction.L, Direction.U)):
        segments = [
            TemplateSegment(
                start=f"{start_type}.{direction_to_string(arriving)}",
                end=f"{end_type}.{direction_to_string(step)}",
                points=_STEP_POINTS[step],
            )
            for arriving in _TURNS[step]
        ]
        templates.append(
            TerrainTemplate(
                id=base_id + i,
                size=(1, 1),
                tiles=[terrain_type],
                categories=[category],
                segments=segments,
            )
        )
    return templates


def temperate_catalog() -> TerrainCatalog:
    """Built-in catalog with clear, water, beach, cliff, road and rock templates."""
    templates = [
        TerrainTemplate(id=255, size=(1, 1), tiles=["Clear"] * 16, categories=["Clear"], pick_any=True),
        TerrainTemplate(id=1, size=(1, 1), tiles=["Water"] * 2, categories=["Water"], pick_any=True),
        TerrainTemplate(id=97, size=(2, 2), tiles=["Rock"] * 4, categories=["Debris"]),
        TerrainTemplate(id=98, size=(2, 1), tiles=["Rock"] * 2, categories=["Debris"]),
        TerrainTemplate(id=99, size=(1, 2), tiles=["Rock"] * 2, categories=["Debris"]),
        TerrainTemplate(
            id=103, size=(3, 2), tiles=["Rock", "Rock", None, "Rock", "Rock", "Rock"], categories=["Debris"]
        ),
        TerrainTemplate(id=104, size=(1, 1), tiles=["Rock"], categories=["Debris"]),
        TerrainTemplate(
            id=105,
            size=(3, 3),
            tiles=[None, "Rock", None, "Rock", "Rock", "Rock", None, "Rock", "Rock"],
            categories=["Debris"],
        ),
        TerrainTemplate(
            id=106,
            size=(3, 3),
            tiles=["Rock", "Rock", None, "Rock", "Rock", "Rock", None, "Rock", None],
            categories=["Debris"],
        ),
    ]
    templates += _connector_templates(200, "Beach", "Beach", "Beach", "Beach")
    templates += _connector_templates(300, "Cliff", "Cliff", "Rock", "Cliffs")
    templates += _connector_templates(310, "Clear", "Cliff", "Rough", "Cliffs")
    templates += _connector_templates(320, "Cliff", "Clear", "Rough", "Cliffs")
    templates += _connector_templates(400, "Road", "Road", "Road", "Road")
    templates += _connector_templates(410, "Clear", "Road", "Road", "Road")
    templates += _connector_templates(420, "Road", "Clear", "Road", "Road")

    return TerrainCatalog(
        name="temperate",
        land_tile=255,
        water_tile=1,
        terrain_types=[
            "Clear",
            "Water",
            "Road",
            "Rock",
            "Tree",
            "River",
            "Rough",
            "Wall",
            "Beach",
            "Ore",
            "Gems",
        ],
        templates=templates,
    )
