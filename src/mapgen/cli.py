"""Command-line interface for map generation."""

import argparse
import logging
import sys
import time
from pathlib import Path

import structlog

from .config import PRESETS, load_config, preset_config
from .exceptions import MapGenerationError

logger = structlog.get_logger()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for map generation."""
    parser = argparse.ArgumentParser(description="Generate a procedural strategy map")
    parser.add_argument("--width", type=int, default=None, help="Map width (default: 96)")
    parser.add_argument("--height", type=int, default=None, help="Map height (default: 96)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: 42)")
    parser.add_argument("--preset", choices=sorted(PRESETS), default=None, help="Settings preset")
    parser.add_argument("--config", type=str, default=None, help="TOML settings file")
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="map.npz",
        help="Output path (default: map.npz)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )

    # Import here to avoid slow startup for --help
    from .generator import generate_map
    from .persistence import save_map

    overrides = {
        key: value
        for key, value in (("seed", args.seed), ("width", args.width), ("height", args.height))
        if value is not None
    }
    if args.config is not None:
        config = load_config(Path(args.config), args.preset).model_copy(update=overrides)
    else:
        config = preset_config(args.preset, **overrides)

    output_path = Path(args.output)
    if output_path.suffix != ".npz":
        output_path = output_path.with_suffix(".npz")

    print(f"Generating {config.width}x{config.height} map with seed {config.seed}")

    start_time = time.time()
    try:
        result = generate_map(config)
    except MapGenerationError as e:
        logger.error("generation_failed", reason=str(e))
        return 1
    gen_time = time.time() - start_time

    spawns = len(result.entities_of_type("mpspawn"))
    print(f"Generation complete in {gen_time:.1f}s")
    print(f"Entities: {len(result.entities)} ({spawns} spawns)")
    print(f"Resources: {result.resource_value} of {result.resource_target}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    save_map(output_path, result)
    print(f"Saved to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
