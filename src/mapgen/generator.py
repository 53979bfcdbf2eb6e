"""Main map generation orchestration."""

import numpy as np
import structlog
from numpy.typing import NDArray
from structlog.typing import FilteringBoundLogger

from .calibration import calibrate_height_in_place
from .catalog import TerrainCatalog, temperate_catalog
from .config import MapGeneratorConfig
from .contours import borders_to_points, mask_points, points_chirality, tweak_path_points
from .entities import place_buildings, place_expansions, place_spawns, zoneable_mask
from .exceptions import SymmetryPolicyError
from .fields import (
    calculate_roominess,
    gaussian_blur,
    grid_variance,
    kernel_dilate_or_erode,
    reserve_circle_in_place,
)
from .landmass import produce_terrain
from .noise import AmplitudeFunction, clumpy_amplitude, pink_amplitude, symmetric_fractal_noise
from .obstacles import (
    Replaceability,
    forest_obstacles,
    identify_replaceable_tiles,
    obstruct_area,
    replaceability_table,
    unplayable_obstacles,
)
from .plans import EntityPlan, EntityRules, default_entity_rules
from .regions import find_playable_regions, largest_region, playability_table, playable_area
from .resources import nearest_mine_types, place_resources, resource_target, resource_value_field
from .roads import deflate_space, plan_roads
from .streams import RandomStreams
from .symmetry import (
    Mirror,
    is_trivial_rotation,
    rotate_and_mirror_over_grid_squares,
    symmetric_and,
)
from .tilemap import TileGrid
from .tiling import PermittedTemplates, TilingPath, tile_path
from .types import Point
from .validation import validate_config

EXTERNAL_BIAS = 1_000_000.0

# Terrain pairs that symmetry enforcement knows how to judge
_OPEN_TERRAIN = ("Beach", "Clear", "Rough")
_CLOSED_TERRAIN = ("River", "Rock", "Water")


class GenerationResult:
    """Result of map generation with the intermediate fields worth keeping."""

    def __init__(
        self,
        tiles: NDArray[np.uint16],
        tile_indices: NDArray[np.uint8],
        resource_types: NDArray[np.uint8],
        resource_densities: NDArray[np.uint8],
        resource_value: int,
        resource_target: int,
        entities: list[EntityPlan],
        config: MapGeneratorConfig,
        elevation: NDArray[np.float32],
        land_plan: NDArray[np.bool_],
        playable_area: NDArray[np.bool_],
    ):
        self.tiles = tiles
        self.tile_indices = tile_indices
        self.resource_types = resource_types
        self.resource_densities = resource_densities
        self.resource_value = resource_value
        self.resource_target = resource_target
        self.entities = entities
        self.config = config
        self.elevation = elevation
        self.land_plan = land_plan
        self.playable_area = playable_area

    @property
    def resource_shortfall(self) -> int:
        return max(self.resource_target - self.resource_value, 0)

    def entities_of_type(self, entity_type: str) -> list[EntityPlan]:
        return [plan for plan in self.entities if plan.type == entity_type]


class _Pipeline:
    """State shared by the generation stages of one run."""

    def __init__(
        self,
        config: MapGeneratorConfig,
        catalog: TerrainCatalog,
        rules: EntityRules,
        log: FilteringBoundLogger,
    ):
        self.config = config
        self.catalog = catalog
        self.rules = rules
        self.log = log
        self.width = config.width
        self.height = config.height
        self.min_span = min(self.width, self.height)
        self.rotations = config.symmetry.rotations
        self.mirror = Mirror(config.symmetry.mirror)
        self.trivial_rotation = is_trivial_rotation(self.rotations)
        # Quarter-cell offset kept for seed compatibility of circular maps
        self.circle_center = ((self.width - 0.5) / 2.0, (self.height - 0.5) / 2.0)

        self.streams = RandomStreams(config.seed)
        self.grid = TileGrid(self.width, self.height, catalog)
        self.plans: list[EntityPlan] = []
        self.replaceability = replaceability_table(catalog)
        self.playability = playability_table(catalog)

        self.cliff_permitted = PermittedTemplates(
            catalog.find_templates(["Clear"], ["Cliff"]),
            catalog.find_templates(["Cliff"]),
            catalog.find_templates(["Cliff"], ["Clear"]),
        )
        self.loop_cliff_permitted = PermittedTemplates(catalog.find_templates(["Cliff"]))

    @property
    def size(self) -> Point:
        return (self.width, self.height)

    def noise(self, rng: np.random.Generator, amplitude: AmplitudeFunction) -> NDArray[np.float32]:
        return symmetric_fractal_noise(
            rng,
            self.width,
            self.height,
            self.rotations,
            self.mirror,
            self.config.terrain.wavelength_scale,
            amplitude,
        )

    def symmetric(self, mask: NDArray[np.bool_]) -> NDArray[np.bool_]:
        """Tighten a mask to its symmetric core where rotations allow it."""
        if self.trivial_rotation:
            return symmetric_and(mask, self.rotations, self.mirror)
        return mask

    def tile_cliff(self, points: list[Point]) -> None:
        tweaked = tweak_path_points(points, self.width, self.height)
        if tweaked[0] == tweaked[-1]:
            path = TilingPath(tweaked, "Cliff", "Cliff", self.loop_cliff_permitted)
        else:
            path = TilingPath(tweaked, "Clear", "Clear", self.cliff_permitted)
        tile_path(
            self.grid,
            path,
            self.streams.cliff_tiling,
            self.config.terrain.minimum_mountain_thickness,
        )

    def replaceable(self) -> NDArray[np.uint8]:
        return identify_replaceable_tiles(self.grid, self.replaceability)


def _make_elevation(p: _Pipeline) -> NDArray[np.float32]:
    terrain = p.config.terrain
    elevation = p.noise(p.streams.water, pink_amplitude)
    if terrain.terrain_smoothing > 0:
        elevation = gaussian_blur(elevation, terrain.terrain_smoothing)
    calibrate_height_in_place(elevation, 0.0, terrain.water)
    if terrain.external_circular_bias != 0:
        reserve_circle_in_place(
            elevation,
            p.circle_center,
            p.min_span / 2.0 - (terrain.minimum_land_sea_thickness + terrain.minimum_mountain_thickness),
            terrain.external_circular_bias * EXTERNAL_BIAS,
            invert=True,
        )
    return elevation


def _lay_beaches(p: _Pipeline, land_plan: NDArray[np.bool_]) -> int:
    """Tile coastlines and flood the sea side with water."""
    catalog = p.catalog
    coastlines = borders_to_points(land_plan)
    if not coastlines:
        tile = catalog.land_tile if land_plan[0, 0] else catalog.water_tile
        p.grid.fill(tile, p.streams.pick_any)
        return 0

    permitted = PermittedTemplates(catalog.find_templates(["Beach"]))
    tiled = []
    for coastline in coastlines:
        tweaked = tweak_path_points(coastline, p.width, p.height)
        path = TilingPath(tweaked, "Beach", "Beach", permitted)
        tiled.append(
            tile_path(p.grid, path, p.streams.beach_tiling, p.config.terrain.minimum_land_sea_thickness)
        )

    chirality = points_chirality(p.width, p.height, tiled)
    # Beach tiles already laid stay
    sea = (chirality < 0) & (p.grid.templates == catalog.land_tile)
    p.grid.fill(catalog.water_tile, p.streams.pick_any, sea)
    return len(coastlines)


def _raise_mountains(p: _Pipeline, elevation: NDArray[np.float32], land_plan: NDArray[np.bool_]) -> int:
    """Lay nested cliff contours, one altitude at a time."""
    terrain = p.config.terrain
    roughness = np.sqrt(grid_variance(elevation, terrain.roughness_radius))
    calibrate_height_in_place(roughness, 0.0, 1.0 - terrain.roughness)
    cliff_mask = roughness >= 0.0

    mountain_elevation = elevation.copy()
    cliff_plan = land_plan.copy()
    if terrain.external_circular_bias > 0:
        reserve_circle_in_place(
            cliff_plan,
            p.circle_center,
            p.min_span / 2.0 - (terrain.minimum_land_sea_thickness + terrain.minimum_mountain_thickness),
            False,
            invert=True,
        )

    total_cliffs = 0
    for altitude in range(1, terrain.maximum_altitude + 1):
        # Keep new contours away from existing cliffs and coastline
        roominess = calculate_roominess(cliff_plan, True)
        crowded = roominess < terrain.minimum_terrain_contour_spacing
        mountain_elevation[crowded] = -1.0
        available = int(np.count_nonzero(~crowded))
        # Every cell is counted twice, which halves the effective fraction
        total = 2 * p.width * p.height
        calibrate_height_in_place(mountain_elevation, 0.0, 1.0 - available / total * terrain.mountains)

        cliff_plan = produce_terrain(
            mountain_elevation,
            terrain.terrain_smoothing,
            terrain.smoothing_threshold,
            terrain.minimum_mountain_thickness,
            False,
            log=p.log,
            label=f"mountains_{altitude}",
        )
        cliffs = mask_points(borders_to_points(cliff_plan), cliff_mask)
        cliffs = [cliff for cliff in cliffs if len(cliff) >= terrain.minimum_cliff_length]
        if not cliffs:
            break
        for cliff in cliffs:
            p.tile_cliff(cliff)
        total_cliffs += len(cliffs)
        p.log.debug("cliffs_tiled", altitude=altitude, count=len(cliffs))
    return total_cliffs


def _plant_forests(p: _Pipeline) -> int:
    forest = p.config.forests
    noise = p.noise(p.streams.forest, clumpy_amplitude(forest.forest_clumpiness))
    calibrate_height_in_place(noise, 0.0, 1.0 - forest.forests)
    clear = p.grid.terrain_mask("Clear")
    plan = (noise >= 0.0) & clear

    if forest.forest_cutout > 0:
        cutout = forest.forest_cutout
        deflated = deflate_space(p.symmetric(clear), True)
        kernel = np.ones((2 * cutout, 2 * cutout), dtype=bool)
        paths = kernel_dilate_or_erode(deflated != 0, kernel, (cutout - 1, cutout - 1), True)
        plan &= ~paths[: p.height, : p.width]

    replace = np.where(plan, p.replaceable(), Replaceability.NONE).astype(np.uint8)
    return obstruct_area(
        p.grid, p.plans, replace, forest_obstacles(p.catalog, p.rules), p.streams.forest_tiling
    )


def _enforce_symmetry(p: _Pipeline) -> int:
    """Cover cells whose symmetric copies disagree on terrain.

    Level 1 only matches passability, level 2 matches the terrain type.

    Raises:
        SymmetryPolicyError: For terrain pairings with no defined policy.
    """
    enforce = p.config.symmetry.enforce
    catalog = p.catalog
    index_of = {name: i for i, name in enumerate(catalog.terrain_types)}
    open_terrain = {index_of[name] for name in _OPEN_TERRAIN if name in index_of}
    closed_terrain = {index_of[name] for name in _CLOSED_TERRAIN if name in index_of}
    terrain = p.grid.terrain_indices()
    replace = np.zeros((p.height, p.width), dtype=np.uint8)

    def compatible(main: int, other: int) -> bool:
        if main == other or main in closed_terrain:
            return True
        if main in open_terrain:
            if other in closed_terrain:
                return False
            if other in open_terrain:
                return enforce < 2
        raise SymmetryPolicyError("ambiguous symmetry policy")

    def check(sources: list[Point], destination: Point) -> None:
        dx, dy = destination
        main = int(terrain[dy, dx])
        for sx, sy in sources:
            if 0 <= sx < p.width and 0 <= sy < p.height and not compatible(main, int(terrain[sy, sx])):
                replace[dy, dx] = Replaceability.ENTITY
                return

    rotate_and_mirror_over_grid_squares(p.size, p.rotations, p.mirror, check)
    p.log.debug("symmetry_mismatches", cells=int(np.count_nonzero(replace)))
    return obstruct_area(p.grid, p.plans, replace, forest_obstacles(p.catalog, p.rules), p.streams.master)


def _find_playable_area(p: _Pipeline) -> NDArray[np.bool_]:
    """Pick the main region, walling off the rest when asked to."""
    terrain = p.config.terrain
    region_mask, regions, playability = find_playable_regions(p.grid, p.plans, p.playability)
    largest = largest_region(regions, terrain.external_circular_bias > 0)
    p.log.info("regions_found", count=len(regions), largest=largest.playable_area)

    if terrain.deny_walled_areas:
        replace = np.where(region_mask == largest.id, Replaceability.NONE, p.replaceable()).astype(np.uint8)
        painted = obstruct_area(
            p.grid, p.plans, replace, unplayable_obstacles(p.catalog, p.rules), p.streams.master
        )
        p.log.debug("walled_areas_obstructed", obstacles=painted)

    return playable_area(playability, region_mask, largest)


def _lay_roads(p: _Pipeline, playable: NDArray[np.bool_]) -> int:
    spacing = p.config.roads.road_spacing
    space = p.symmetric(playable & p.grid.terrain_mask("Clear"))
    road_types = ["Road", "RoadIn", "RoadOut"]
    permitted = PermittedTemplates(
        p.catalog.find_templates(["Clear"], road_types),
        p.catalog.find_templates(road_types),
        p.catalog.find_templates(road_types, ["Clear"]),
    )
    roads = plan_roads(space, spacing)
    for road in roads:
        path = TilingPath(road, "Clear", "Clear", permitted)
        tile_path(p.grid, path, p.streams.road_tiling, spacing * 2)
    return len(roads)


def _place_entities(p: _Pipeline, playable: NDArray[np.bool_]) -> None:
    entities = p.config.entities
    buildings = p.config.buildings
    zoneable = zoneable_mask(p.grid, playable, p.plans, p.rotations, p.mirror)

    spawns = place_spawns(
        zoneable,
        p.plans,
        p.rules,
        players=p.config.symmetry.players,
        central_reservation=p.min_span * entities.central_spawn_reservation_fraction,
        spawn_region_size=entities.spawn_region_size,
        spawn_build_size=entities.spawn_build_size,
        spawn_mines=entities.spawn_mines,
        spawn_reservation=entities.spawn_reservation,
        mine_reservation=entities.mine_reservation,
        gem_upgrade=entities.gem_upgrade,
        rotations=p.rotations,
        mirror=p.mirror,
        rng=p.streams.master,
        mine_rng=p.streams.player,
        log=p.log,
    )
    expansions = place_expansions(
        zoneable,
        p.plans,
        p.rules,
        central_reservation=p.min_span * entities.central_expansion_reservation_fraction,
        maximum_mines=entities.maximum_expansion_mines,
        maximum_mines_per_expansion=entities.maximum_mines_per_expansion,
        minimum_size=entities.minimum_expansion_size,
        maximum_size=entities.maximum_expansion_size,
        inner_size=entities.expansion_inner,
        border=entities.expansion_border,
        mine_reservation=entities.mine_reservation,
        gem_upgrade=entities.gem_upgrade,
        rotations=p.rotations,
        mirror=p.mirror,
        rng=p.streams.expansion,
        mine_rng=p.streams.player,
        log=p.log,
    )
    placed = place_buildings(
        zoneable,
        p.plans,
        p.rules,
        buildings.weights,
        buildings.minimum_buildings,
        buildings.maximum_buildings,
        p.rotations,
        p.mirror,
        p.streams.building,
        log=p.log,
    )
    p.log.info("entities_placed", spawns=len(spawns), expansions=expansions, buildings=len(placed))


def generate_map(
    config: MapGeneratorConfig,
    catalog: TerrainCatalog | None = None,
    rules: EntityRules | None = None,
    log: FilteringBoundLogger | None = None,
) -> GenerationResult:
    """Generate a complete map from configuration.

    Args:
        config: Map generation configuration.
        catalog: Terrain templates; defaults to the temperate catalog.
        rules: Entity footprints; defaults to default_entity_rules().
        log: Logger every stage reports to.

    Returns:
        GenerationResult with tiles, resources and entity plans.

    Raises:
        SettingsValidationError: If the settings are invalid.
        GenerationInfeasibleError: If the settings cannot produce a map.
        SymmetryPolicyError: If symmetry enforcement meets an undefined
            terrain pairing.
    """
    if catalog is None:
        catalog = temperate_catalog()
    if rules is None:
        rules = default_entity_rules()
    if log is None:
        log = structlog.get_logger().bind(seed=config.seed, width=config.width, height=config.height)

    validate_config(config, rules, log=log)
    p = _Pipeline(config, catalog, rules, log)
    terrain = config.terrain
    log.info("generation_started", rotations=p.rotations, mirror=p.mirror.name)

    p.grid.fill(catalog.land_tile, p.streams.pick_any)

    # Stage 1: Elevation and landmass
    elevation = _make_elevation(p)
    land_plan = produce_terrain(
        elevation,
        terrain.terrain_smoothing,
        terrain.smoothing_threshold,
        terrain.minimum_land_sea_thickness,
        terrain.water < 0.5,
        log=log,
        label="land",
    )
    log.info("land_planned", land_fraction=round(float(np.mean(land_plan)), 3))

    # Stage 2: Coastlines
    coastlines = _lay_beaches(p, land_plan)
    log.info("beaches_tiled", count=coastlines)

    ore_noise = p.noise(p.streams.resource, clumpy_amplitude(config.resources.ore_clumpiness))

    # Stage 3: Cliffs
    if terrain.external_circular_bias > 0:
        ring = np.zeros((p.height, p.width), dtype=bool)
        reserve_circle_in_place(
            ring, p.circle_center, p.min_span / 2.0 - terrain.minimum_land_sea_thickness, True, invert=True
        )
        for cliff in borders_to_points(ring):
            p.tile_cliff(cliff)
        log.debug("border_cliffs_tiled")

    if terrain.mountains > 0.0 or terrain.external_circular_bias == 1:
        cliffs = _raise_mountains(p, elevation, land_plan)
        log.info("mountains_raised", cliffs=cliffs)

    # Stage 4: Forests
    if config.forests.forests > 0.0:
        trees = _plant_forests(p)
        log.info("forests_planted", obstacles=trees)

    if config.symmetry.enforce != 0:
        corrections = _enforce_symmetry(p)
        log.info("symmetry_enforced", obstacles=corrections)

    # Stage 5: Playable space
    playable = _find_playable_area(p)

    if config.roads.roads:
        roads = _lay_roads(p, playable)
        log.info("roads_tiled", count=roads)

    # Stage 6: Entities and resources
    if config.entities.create_entities:
        _place_entities(p, playable)

    eligible = playable & p.grid.terrain_mask("Clear")
    values = resource_value_field(
        ore_noise,
        eligible,
        p.plans,
        config.resources.ore_uniformity,
        config.entities.spawn_region_size,
        config.resources.spawn_resource_bias,
    )
    types = nearest_mine_types((p.height, p.width), p.plans, config.entities.mine_reservation)
    target = resource_target(config.resources.resources_per_player, config.symmetry.players, p.rotations, p.mirror)
    layout = place_resources(values, types, target, p.rotations, p.mirror, log=log)

    log.info(
        "generation_complete",
        entities=len(p.plans),
        resource_value=layout.total_value,
        resource_target=target,
    )
    return GenerationResult(
        tiles=p.grid.templates,
        tile_indices=p.grid.indices,
        resource_types=layout.types,
        resource_densities=layout.densities,
        resource_value=layout.total_value,
        resource_target=target,
        entities=p.plans,
        config=config,
        elevation=elevation,
        land_plan=land_plan,
        playable_area=playable,
    )
