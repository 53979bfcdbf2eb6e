"""Map generator configuration models."""

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from .symmetry import Mirror


class SymmetryConfig(BaseModel):
    """Rotational and mirror symmetry of the map."""

    rotations: int = Field(default=2, description="Rotational symmetry copies")
    mirror: Mirror = Field(default=Mirror.NONE, description="Mirror axis applied after each rotation")
    players: int = Field(default=1, description="Players per symmetry copy")
    enforce: int = Field(
        default=0,
        description="Symmetry corrections: 0 none, 1 match passability, 2 match terrain type",
    )


class TerrainConfig(BaseModel):
    """Elevation, coastline and mountain parameters."""

    wavelength_scale: float = Field(default=0.2, description="Noise wavelength scale")
    water: float = Field(default=0.2, description="Water fraction (0-1)")
    mountains: float = Field(default=0.1, description="Mountain fraction, nested per altitude (0-1)")
    external_circular_bias: int = Field(
        default=0,
        description="0 square map, -1 circle with water outside, 1 circle with mountains outside",
    )
    terrain_smoothing: int = Field(default=4, description="Elevation blur and majority-vote radius")
    smoothing_threshold: float = Field(default=0.33, description="Majority required by the smoothing blur")
    minimum_land_sea_thickness: int = Field(default=5, description="Minimum land or sea feature width")
    minimum_mountain_thickness: int = Field(default=5, description="Minimum mountain feature width")
    maximum_altitude: int = Field(default=8, description="Maximum number of nested cliff levels")
    roughness_radius: int = Field(default=5, description="Roughness sampling radius")
    roughness: float = Field(default=0.5, description="Fraction of terrain rough enough for cliffs")
    minimum_terrain_contour_spacing: int = Field(
        default=6, description="Minimum spacing between nested cliff contours"
    )
    minimum_cliff_length: int = Field(default=10, description="Shorter cliffs are dropped")
    deny_walled_areas: bool = Field(default=True, description="Obstruct areas cut off from the main region")


class ForestConfig(BaseModel):
    """Forest parameters."""

    forests: float = Field(default=0.025, description="Forest fraction (0-1)")
    forest_clumpiness: float = Field(default=0.5, description="Forest noise clumpiness")
    forest_cutout: int = Field(default=2, description="Width of paths kept clear through forests")


class RoadConfig(BaseModel):
    """Road parameters."""

    roads: bool = Field(default=True, description="Lay roads through open space")
    road_spacing: int = Field(default=5, description="Clearance between roads and obstacles")


class EntityConfig(BaseModel):
    """Spawn and expansion parameters."""

    create_entities: bool = Field(default=True, description="Place spawns, mines and buildings")
    central_spawn_reservation_fraction: float = Field(
        default=0.3, description="Central area kept free of spawns, as a fraction of the shorter side"
    )
    central_expansion_reservation_fraction: float = Field(
        default=0.1, description="Central area kept free of expansions, as a fraction of the shorter side"
    )
    mine_reservation: int = Field(default=8, description="Spacing kept around unrelated mines")
    spawn_region_size: int = Field(default=16, description="Spawn region radius")
    spawn_build_size: int = Field(default=8, description="Spawn build radius kept free of mines")
    spawn_mines: int = Field(default=3, description="Mines around each spawn")
    spawn_reservation: int = Field(default=20, description="Spacing kept around each spawn")
    gem_upgrade: float = Field(default=0.05, description="Probability that a mine is a gem mine")
    maximum_expansion_mines: int = Field(default=5, description="Expansion mines per player")
    maximum_mines_per_expansion: int = Field(default=2, description="Maximum mines per expansion")
    minimum_expansion_size: int = Field(default=2, description="Minimum expansion radius")
    maximum_expansion_size: int = Field(default=12, description="Maximum expansion radius")
    expansion_inner: int = Field(default=2, description="Expansion inner radius kept free of mines")
    expansion_border: int = Field(default=1, description="Border kept around each expansion")


class ResourceConfig(BaseModel):
    """Resource field parameters."""

    resources_per_player: int = Field(default=50000, description="Starting resource value per player")
    spawn_resource_bias: float = Field(default=1.25, description="Resource value boost next to spawns")
    ore_uniformity: float = Field(default=0.25, description="Blend of flat value into the ore pattern")
    ore_clumpiness: float = Field(default=0.25, description="Ore noise clumpiness")


class BuildingConfig(BaseModel):
    """Neutral tech building parameters."""

    minimum_buildings: int = Field(default=0, description="Minimum buildings per symmetry copy")
    maximum_buildings: int = Field(default=3, description="Maximum buildings per symmetry copy")
    weights: dict[str, float] = Field(
        default_factory=lambda: {"fcom": 1.0, "hosp": 2.0, "miss": 2.0, "bio": 0.0, "oilb": 8.0},
        description="Relative weight of each building type",
    )


class MapGeneratorConfig(BaseModel):
    """Complete map generation configuration."""

    seed: int = Field(default=42, description="Random seed for reproducibility")
    width: int = Field(default=96, description="Map width in cells")
    height: int = Field(default=96, description="Map height in cells")

    symmetry: SymmetryConfig = Field(default_factory=SymmetryConfig)
    terrain: TerrainConfig = Field(default_factory=TerrainConfig)
    forests: ForestConfig = Field(default_factory=ForestConfig)
    roads: RoadConfig = Field(default_factory=RoadConfig)
    entities: EntityConfig = Field(default_factory=EntityConfig)
    resources: ResourceConfig = Field(default_factory=ResourceConfig)
    buildings: BuildingConfig = Field(default_factory=BuildingConfig)


PRESETS: dict[str, dict] = {
    "plains": {"terrain": {"water": 0.0}},
}


def _merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def preset_config(name: str | None, **overrides) -> MapGeneratorConfig:
    """Default configuration with a named preset applied.

    Args:
        name: Preset name, or None for the plain defaults.
        **overrides: Top-level fields (e.g. seed, width) to set afterwards.

    Raises:
        ValueError: If the preset is unknown.
    """
    if name is None:
        data: dict = {}
    elif name in PRESETS:
        data = PRESETS[name]
    else:
        raise ValueError(f"Invalid preset: {name}")
    return MapGeneratorConfig.model_validate(_merge(data, overrides))


def load_config(path: Path, preset: str | None = None) -> MapGeneratorConfig:
    """Load a configuration from a TOML file, on top of an optional preset.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the preset is unknown.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "rb") as f:
        data = tomllib.load(f)
    base = {} if preset is None else PRESETS.get(preset)
    if base is None:
        raise ValueError(f"Invalid preset: {preset}")
    return MapGeneratorConfig.model_validate(_merge(base, data))
