"""Tests for the command-line interface."""

from pathlib import Path

import pytest

from mapgen.cli import main
from mapgen.persistence import load_map

TINY_SETTINGS = """
seed = 7
width = 2
height = 2

[terrain]
water = 0.0
mountains = 0.0

[forests]
forests = 0.0

[roads]
roads = false

[resources]
resources_per_player = 50
"""


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    path = tmp_path / "tiny.toml"
    path.write_text(TINY_SETTINGS)
    return path


class TestMain:
    """Tests for the CLI entry point."""

    def test_generates_map(self, settings_path: Path, tmp_path: Path) -> None:
        """The map is written to the requested path."""
        output = tmp_path / "out" / "tiny.npz"
        assert main(["--config", str(settings_path), "-o", str(output)]) == 0
        grids, entities, metadata = load_map(output)
        assert grids["tiles"].shape == (2, 2)
        assert len(entities) == 2
        assert metadata["seed"] == 7

    def test_overrides_and_suffix(self, settings_path: Path, tmp_path: Path) -> None:
        """Flags override the file and the output gets an .npz suffix."""
        output = tmp_path / "tiny.map"
        assert main(["--config", str(settings_path), "--seed", "8", "-o", str(output)]) == 0
        grids, _, metadata = load_map(tmp_path / "tiny.npz")
        assert grids["tiles"].shape == (2, 2)
        assert metadata["seed"] == 8

    def test_invalid_settings(self, settings_path: Path, tmp_path: Path) -> None:
        """Invalid settings exit with status 1 and write nothing."""
        output = tmp_path / "bad.npz"
        assert main(["--config", str(settings_path), "--width", "0", "-o", str(output)]) == 1
        assert not output.exists()

    def test_invalid_preset(self) -> None:
        with pytest.raises(SystemExit):
            main(["--preset", "swamp"])
