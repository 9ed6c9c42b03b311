"""Unit tests for scan configuration."""

import tomllib
from pathlib import Path

import pytest
from dirscan.core.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    ScanConfig,
    config_to_dict,
    load_config,
    load_config_or_default,
    save_config,
)
from pydantic import ValidationError


class TestScanConfig:
    """Tests for the ScanConfig model."""

    def test_defaults(self) -> None:
        """Defaults scan everything and sort by size."""
        config = ScanConfig()

        assert config.exclude == []
        assert config.exclude_from == []
        assert config.one_file_system is False
        assert config.sort == "size"
        assert config.dirs_first is False
        assert config.limit is None

    def test_rejects_unknown_keys(self) -> None:
        """Unknown settings are rejected."""
        with pytest.raises(ValidationError):
            ScanConfig.model_validate({"colour": "red"})

    def test_rejects_invalid_sort(self) -> None:
        """Only known sort orders are accepted."""
        with pytest.raises(ValidationError):
            ScanConfig(sort="mtime")  # type: ignore[arg-type]

    def test_rejects_zero_limit(self) -> None:
        """The display limit must be positive."""
        with pytest.raises(ValidationError):
            ScanConfig(limit=0)


class TestLoadConfig:
    """Tests for load_config and load_config_or_default."""

    def test_load_valid(self, tmp_path: Path) -> None:
        """A valid file is parsed and validated."""
        config_path = tmp_path / "config.toml"
        config_path.write_text(
            'exclude = ["node_modules", "*.pyc"]\n'
            "one_file_system = true\n"
            'sort = "name"\n'
            "dirs_first = true\n"
            "limit = 5\n"
        )

        config = load_config(config_path)

        assert config.exclude == ["node_modules", "*.pyc"]
        assert config.one_file_system is True
        assert config.sort == "name"
        assert config.dirs_first is True
        assert config.limit == 5

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML raises ConfigParseError."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("exclude = [")

        with pytest.raises(ConfigParseError, match="Invalid TOML"):
            load_config(config_path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        """Schema violations raise ConfigError."""
        config_path = tmp_path / "config.toml"
        config_path.write_text('sort = "mtime"\n')

        with pytest.raises(ConfigError, match="Invalid config content"):
            load_config(config_path)

    def test_or_default_missing(self, tmp_path: Path) -> None:
        """A missing file gives the defaults."""
        assert load_config_or_default(tmp_path / "missing.toml") == ScanConfig()

    def test_or_default_invalid_still_raises(self, tmp_path: Path) -> None:
        """An invalid file is not silently replaced by defaults."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("limit = -1\n")

        with pytest.raises(ConfigError):
            load_config_or_default(config_path)


class TestSaveConfig:
    """Tests for save_config."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """A saved config loads back unchanged."""
        config_path = tmp_path / "nested" / "config.toml"
        config = ScanConfig(
            exclude=["*.o"],
            exclude_from=[tmp_path / "patterns"],
            one_file_system=True,
            limit=10,
        )

        written = save_config(config, config_path)

        assert written == config_path
        assert load_config(config_path) == config
        assert list(config_path.parent.glob("*.tmp")) == []

    def test_unlimited_omitted(self, tmp_path: Path) -> None:
        """An unlimited display limit is left out of the file."""
        config_path = tmp_path / "config.toml"

        save_config(ScanConfig(), config_path)

        data = tomllib.loads(config_path.read_text())
        assert "limit" not in data
        assert load_config(config_path).limit is None

    def test_write_failure(self, tmp_path: Path) -> None:
        """An unwritable location raises ConfigError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(ConfigError, match="Failed to write"):
            save_config(ScanConfig(), blocker / "config.toml")

    def test_config_to_dict_paths_as_strings(self, tmp_path: Path) -> None:
        """Paths are serialized as strings."""
        data = config_to_dict(ScanConfig(exclude_from=[tmp_path / "x"]))

        assert data["exclude_from"] == [str(tmp_path / "x")]
