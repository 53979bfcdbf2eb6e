"""Map persistence: save and load generated maps."""

import json
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import structlog
from numpy.typing import NDArray

from .generator import GenerationResult

GRID_NAMES = ("tiles", "tile_indices", "resource_types", "resource_densities")

log = structlog.get_logger()


def save_map(path: Path, result: GenerationResult) -> None:
    """Save a generated map to disk.

    Uses numpy's compressed .npz format. Entity plans and metadata are
    stored as JSON.

    Args:
        path: Output path (should end with .npz).
        result: Generation result to save.
    """
    config = result.config
    metadata = {
        "version": 1,
        "seed": config.seed,
        "width": config.width,
        "height": config.height,
        "resource_value": result.resource_value,
        "resource_target": result.resource_target,
        "config": config.model_dump(mode="json"),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    np.savez_compressed(
        path,
        tiles=result.tiles,
        tile_indices=result.tile_indices,
        resource_types=result.resource_types,
        resource_densities=result.resource_densities,
        entities=json.dumps([plan.to_dict() for plan in result.entities]).encode("utf-8"),
        metadata=json.dumps(metadata).encode("utf-8"),
    )

    file_size = path.stat().st_size / 1024
    log.info("map_saved", path=str(path), size_kb=round(file_size, 1))


def load_map(path: Path) -> tuple[dict[str, NDArray], list[dict], dict]:
    """Load a map from disk.

    Args:
        path: Path to .npz file.

    Returns:
        Tuple of (grids by name, entity dicts, metadata dict).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If file format is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Map file not found: {path}")

    with np.load(path) as data:
        grids = {}
        for name in GRID_NAMES:
            if name not in data:
                raise ValueError(f"Invalid map file: missing '{name}' array")
            grids[name] = data[name]

        entities = []
        if "entities" in data:
            entities = json.loads(data["entities"].tobytes().decode("utf-8"))

        metadata = {}
        if "metadata" in data:
            metadata = json.loads(data["metadata"].tobytes().decode("utf-8"))

    height, width = grids["tiles"].shape
    log.info("map_loaded", path=str(path), width=width, height=height, entities=len(entities))
    return grids, entities, metadata
