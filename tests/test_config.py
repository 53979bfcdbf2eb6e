"""Tests for configuration loading and presets."""

from pathlib import Path

import pytest

from mapgen.config import MapGeneratorConfig, load_config, preset_config
from mapgen.symmetry import Mirror


class TestMapGeneratorConfig:
    """Tests for the configuration models."""

    def test_defaults(self) -> None:
        """Defaults describe a 96x96 two-way map."""
        config = MapGeneratorConfig()
        assert config.width == 96
        assert config.height == 96
        assert config.symmetry.rotations == 2
        assert config.symmetry.mirror == Mirror.NONE
        assert config.terrain.water == 0.2
        assert config.buildings.weights["oilb"] == 8.0

    def test_nested_validation(self) -> None:
        """Nested sections validate from plain dicts."""
        config = MapGeneratorConfig.model_validate({"symmetry": {"mirror": 1, "rotations": 1}})
        assert config.symmetry.mirror == Mirror.LEFT_MATCHES_RIGHT
        assert config.symmetry.rotations == 1

    def test_weights_not_shared(self) -> None:
        """Each config gets its own building weights."""
        first = MapGeneratorConfig()
        first.buildings.weights["bio"] = 5.0
        assert MapGeneratorConfig().buildings.weights["bio"] == 0.0


class TestPresets:
    """Tests for named presets."""

    def test_no_preset(self) -> None:
        assert preset_config(None) == MapGeneratorConfig()

    def test_plains(self) -> None:
        """The plains preset has no water."""
        config = preset_config("plains")
        assert config.terrain.water == 0.0
        assert config.terrain.mountains == 0.1

    def test_overrides(self) -> None:
        """Top-level overrides apply on top of the preset."""
        config = preset_config("plains", seed=9, width=40)
        assert config.seed == 9
        assert config.width == 40
        assert config.terrain.water == 0.0

    def test_invalid_preset(self) -> None:
        with pytest.raises(ValueError, match="Invalid preset"):
            preset_config("swamp")


class TestLoadConfig:
    """Tests for TOML configuration files."""

    def test_load(self, tmp_path: Path) -> None:
        """Sections in the file override the defaults."""
        path = tmp_path / "map.toml"
        path.write_text('seed = 5\nwidth = 48\n\n[terrain]\nwater = 0.4\n\n[roads]\nroads = false\n')
        config = load_config(path)
        assert config.seed == 5
        assert config.width == 48
        assert config.height == 96
        assert config.terrain.water == 0.4
        assert config.terrain.mountains == 0.1
        assert config.roads.roads is False

    def test_file_over_preset(self, tmp_path: Path) -> None:
        """File values win over the preset, which wins over defaults."""
        path = tmp_path / "map.toml"
        path.write_text("[terrain]\nmountains = 0.3\n")
        config = load_config(path, "plains")
        assert config.terrain.water == 0.0
        assert config.terrain.mountains == 0.3

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_preset(self, tmp_path: Path) -> None:
        path = tmp_path / "map.toml"
        path.write_text("seed = 1\n")
        with pytest.raises(ValueError, match="Invalid preset"):
            load_config(path, "swamp")
