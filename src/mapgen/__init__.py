"""Procedural strategy map generation package.

This package implements seeded map generation for tile-based strategy maps,
including coastlines, nested cliffs, forests, roads, spawns, expansions and
resource fields, all replicated through rotational and mirror symmetry.
"""

from .catalog import TerrainCatalog, load_catalog, temperate_catalog
from .config import MapGeneratorConfig, load_config, preset_config
from .exceptions import (
    GenerationInfeasibleError,
    MapGenerationError,
    NoPlayableRegionError,
    PathTilingError,
    SettingsValidationError,
    SymmetryPolicyError,
)
from .generator import GenerationResult, generate_map
from .persistence import load_map, save_map
from .plans import EntityPlan, EntityRules, default_entity_rules
from .symmetry import Mirror
from .validation import ValidationResult, check_config, validate_config

__all__ = [
    "EntityPlan",
    "EntityRules",
    "GenerationInfeasibleError",
    "GenerationResult",
    "MapGenerationError",
    "MapGeneratorConfig",
    "Mirror",
    "NoPlayableRegionError",
    "PathTilingError",
    "SettingsValidationError",
    "SymmetryPolicyError",
    "TerrainCatalog",
    "ValidationResult",
    "check_config",
    "default_entity_rules",
    "generate_map",
    "load_catalog",
    "load_config",
    "load_map",
    "preset_config",
    "save_map",
    "temperate_catalog",
    "validate_config",
]
