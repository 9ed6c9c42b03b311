"""Scan configuration and settings.

Defaults for the scan command live in ~/.config/dirscan/config.toml.
Command-line options always override them.

Example config.toml::

    exclude = ["node_modules", "*.pyc"]
    one_file_system = true
    sort = "size"
    dirs_first = true
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dirscan.core.paths import get_config_path

SortOrder = Literal["size", "apparent_size", "items", "name"]


class ScanConfig(BaseModel):
    """Persistent defaults for ``dirscan scan``.

    Attributes:
        exclude: Glob patterns excluded from the scan.
        exclude_from: Files holding additional patterns, one per line.
        one_file_system: Do not cross filesystem boundaries.
        sort: Ordering of the displayed entries.
        dirs_first: List directories before other entries.
        apparent_size: Display apparent sizes instead of disk usage.
        si_units: Use powers of 1000 instead of 1024.
        limit: Number of entries displayed (None = all).
    """

    model_config = ConfigDict(extra="forbid")

    exclude: Annotated[
        list[str],
        Field(description="Glob patterns to exclude"),
    ] = []
    exclude_from: Annotated[
        list[Path],
        Field(description="Files containing exclude patterns"),
    ] = []
    one_file_system: Annotated[
        bool,
        Field(description="Stay on the filesystem of the scan root"),
    ] = False
    sort: Annotated[
        SortOrder,
        Field(description="Display order"),
    ] = "size"
    dirs_first: Annotated[
        bool,
        Field(description="List directories first"),
    ] = False
    apparent_size: Annotated[
        bool,
        Field(description="Show apparent sizes"),
    ] = False
    si_units: Annotated[
        bool,
        Field(description="Use base-10 size units"),
    ] = False
    limit: Annotated[
        int | None,
        Field(ge=1, description="Maximum number of displayed entries"),
    ] = None


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> ScanConfig:
    """Load the scan configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated ScanConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return ScanConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> ScanConfig:
    """Load the scan configuration, falling back to defaults if it is missing.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return ScanConfig()


def save_config(config: ScanConfig, path: Path | None = None) -> Path:
    """Save the scan configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The ScanConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(config_to_dict(config), f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: ScanConfig) -> dict[str, object]:
    """Convert ScanConfig to a dictionary for TOML serialization.

    TOML has no null, so an unlimited ``limit`` is left out.
    """
    return config.model_dump(mode="json", exclude_none=True)
