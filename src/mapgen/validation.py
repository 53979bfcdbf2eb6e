"""Settings validation, run before any grid is allocated."""

import structlog
from structlog.typing import FilteringBoundLogger

from .config import MapGeneratorConfig
from .exceptions import SettingsValidationError
from .plans import EntityRules
from .symmetry import DIAGONAL_MIRRORS, is_trivial_rotation


class ValidationResult:
    """Result of settings validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def check_config(config: MapGeneratorConfig, rules: EntityRules | None = None) -> ValidationResult:
    """Check settings for out-of-range values and incompatible combinations.

    Args:
        config: Generation configuration.
        rules: Entity rules; when given, building types are checked against
            them.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()
    terrain = config.terrain

    if config.width < 1 or config.height < 1:
        result.add_error("map width and height must be at least 1")
    if not 0.0 <= terrain.water <= 1.0:
        result.add_error("water setting must be between 0 and 1 inclusive")
    if not 0.0 <= config.forests.forests <= 1.0:
        result.add_error("forest setting must be between 0 and 1 inclusive")
    if config.forests.forest_clumpiness < 0.0:
        result.add_error("forestClumpiness setting must be >= 0")
    if not 0.0 <= terrain.mountains <= 1.0:
        result.add_error("mountains fraction must be between 0 and 1 inclusive")
    if terrain.water + terrain.mountains > 1.0:
        result.add_error("water and mountains fractions combined must not exceed 1")
    if terrain.external_circular_bias not in (-1, 0, 1):
        result.add_error("external circular bias must be -1, 0 or 1")
    if terrain.terrain_smoothing < 0:
        result.add_error("terrain smoothing must be >= 0")

    _check_symmetry(config, result)
    _check_entities(config, rules, result)
    return result


def _check_symmetry(config: MapGeneratorConfig, result: ValidationResult) -> None:
    symmetry = config.symmetry
    if symmetry.rotations < 1:
        result.add_error("rotations must be >= 1")
    if symmetry.players < 1:
        result.add_error("players must be >= 1")
    if symmetry.enforce not in (0, 1, 2):
        result.add_error("symmetry enforcement must be 0, 1 or 2")
    elif symmetry.enforce != 0 and not is_trivial_rotation(symmetry.rotations):
        result.add_error("cannot use symmetry enforcement on non-trivial rotations")
    if symmetry.mirror in DIAGONAL_MIRRORS and config.width != config.height:
        result.add_error("diagonal mirrors require a square map")


def _check_entities(config: MapGeneratorConfig, rules: EntityRules | None, result: ValidationResult) -> None:
    buildings = config.buildings
    if buildings.minimum_buildings < 0:
        result.add_error("minimum buildings must be >= 0")
    if buildings.minimum_buildings > buildings.maximum_buildings:
        result.add_error("minimum buildings must not exceed maximum buildings")
    if any(weight < 0.0 for weight in buildings.weights.values()):
        result.add_error("building weights must be >= 0")
    if rules is not None:
        for name in buildings.weights:
            if name not in rules:
                result.add_error(f"unknown building type {name}")

    entities = config.entities
    if not 0.0 <= entities.gem_upgrade <= 1.0:
        result.add_error("gem upgrade probability must be between 0 and 1 inclusive")
    if entities.maximum_mines_per_expansion < 1:
        result.add_error("maximum mines per expansion must be >= 1")
    if config.resources.resources_per_player < 0:
        result.add_error("resources per player must be >= 0")
    if not 0.0 <= config.resources.ore_uniformity <= 1.0:
        result.add_error("ore uniformity must be between 0 and 1 inclusive")
    if config.roads.roads and config.roads.road_spacing < 1:
        result.add_error("road spacing must be >= 1")
    if config.entities.create_entities and buildings.maximum_buildings > 0 and not any(
        weight > 0.0 for weight in buildings.weights.values()
    ):
        result.add_warning("all building weights are zero; no buildings will be placed")


def validate_config(
    config: MapGeneratorConfig,
    rules: EntityRules | None = None,
    log: FilteringBoundLogger | None = None,
) -> ValidationResult:
    """Check settings and raise on any error.

    Raises:
        SettingsValidationError: Listing every problem found.
    """
    if log is None:
        log = structlog.get_logger()
    result = check_config(config, rules)
    for warning in result.warnings:
        log.warning("settings_warning", message=warning)
    if not result.passed:
        log.error("settings_invalid", errors=result.errors)
        raise SettingsValidationError(result.errors)
    return result
