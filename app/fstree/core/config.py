"""User configuration for the fstree command line.

Configuration is stored in ~/.config/fstree/config.toml and provides
defaults that CLI commands merge into every operation:

    conflict_policy = "replace_if_newer"
    exclude = ["!**/.git/**", "!**/__pycache__/**"]
    atomic_backup = true
    log_level = "WARNING"
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fstree.core.errors import FsTreeError
from fstree.core.paths import get_config_path
from fstree.storage.atomic import AtomicWriter
from fstree.storage.temporary import DEFAULT_STALE_AFTER
from fstree.walk.option import ConflictPolicy

logger = logging.getLogger(__name__)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class FsTreeConfig(BaseModel):
    """Settings applied by CLI commands.

    Attributes:
        conflict_policy: Default policy for copy, move and unpack.
        exclude: Exclusion patterns appended to every operation.
        temporary_root: Root of the temporary area (None = system default).
        stale_after_seconds: Age after which another process's temporary
            directory may be reclaimed.
        atomic_backup: Keep a ".bak" of files replaced by atomic writes.
        log_level: Logging level when neither --verbose nor --quiet is given.
    """

    model_config = ConfigDict(extra="forbid")

    conflict_policy: Annotated[
        ConflictPolicy,
        Field(description="Default conflict policy"),
    ] = ConflictPolicy.REPLACE_ALWAYS
    exclude: Annotated[
        list[str],
        Field(description="Exclusion patterns merged into every operation"),
    ] = []
    temporary_root: Annotated[
        Path | None,
        Field(description="Root of the temporary area"),
    ] = None
    stale_after_seconds: Annotated[
        float,
        Field(ge=0, description="Age before a temporary directory is reclaimable"),
    ] = DEFAULT_STALE_AFTER
    atomic_backup: Annotated[
        bool,
        Field(description="Keep .bak files for atomic writes"),
    ] = True
    log_level: Annotated[
        LogLevel,
        Field(description="Default log level"),
    ] = "WARNING"

    @field_validator("exclude")
    @classmethod
    def validate_exclude(cls, patterns: list[str]) -> list[str]:
        """Exclusions must be written as negative patterns."""
        for pattern in patterns:
            if not pattern.startswith("!") or len(pattern) < 2:
                msg = f"exclude pattern must start with '!': {pattern!r}"
                raise ValueError(msg)
        return patterns


class ConfigError(FsTreeError):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> FsTreeConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated FsTreeConfig object.

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
        return FsTreeConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> FsTreeConfig:
    """Load configuration, falling back to defaults when no file exists.

    Raises:
        ConfigParseError: If an existing file has invalid TOML syntax.
        ConfigError: If an existing file doesn't match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        logger.debug("No config file, using defaults")
        return FsTreeConfig()


def save_config(
    config: FsTreeConfig, path: Path | None = None, *, backup: bool | None = None
) -> Path:
    """Save configuration to a TOML file through an atomic write.

    Args:
        config: The FsTreeConfig object to save.
        path: Path to save the config. If None, uses the default path.
        backup: Keep the previous file as .bak. Defaults to
            config.atomic_backup.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    data = config.model_dump(mode="json", exclude_none=True)
    if backup is None:
        backup = config.atomic_backup

    try:
        with AtomicWriter(config_path, "wb", backup=backup) as out:
            tomli_w.dump(data, out)
    except OSError as e:
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
