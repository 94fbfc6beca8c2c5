"""Unit tests for the fstree configuration."""

import tomllib
from pathlib import Path

import pytest
from fstree.core.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    FsTreeConfig,
    load_config,
    load_config_or_default,
    save_config,
)
from fstree.storage.atomic import backup_path
from fstree.walk.option import ConflictPolicy
from pydantic import ValidationError


class TestFsTreeConfig:
    """Tests for the FsTreeConfig model."""

    def test_defaults(self) -> None:
        config = FsTreeConfig()

        assert config.conflict_policy is ConflictPolicy.REPLACE_ALWAYS
        assert config.exclude == []
        assert config.temporary_root is None
        assert config.stale_after_seconds == 3600.0
        assert config.atomic_backup is True
        assert config.log_level == "WARNING"

    def test_exclude_must_be_negative(self) -> None:
        with pytest.raises(ValidationError, match="must start with '!'"):
            FsTreeConfig(exclude=["**/.git/**"])

        with pytest.raises(ValidationError):
            FsTreeConfig(exclude=["!"])

    def test_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValidationError):
            FsTreeConfig.model_validate({"colour": "blue"})

    def test_rejects_negative_staleness(self) -> None:
        with pytest.raises(ValidationError):
            FsTreeConfig(stale_after_seconds=-1)

    def test_policy_from_string(self) -> None:
        config = FsTreeConfig.model_validate({"conflict_policy": "skip_existing"})

        assert config.conflict_policy is ConflictPolicy.SKIP_EXISTING


class TestLoadConfig:
    """Tests for loading configuration files."""

    def test_load_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text(
            'conflict_policy = "replace_if_newer"\n'
            'exclude = ["!**/.git/**"]\n'
            'log_level = "DEBUG"\n'
        )

        config = load_config(path)

        assert config.conflict_policy is ConflictPolicy.REPLACE_IF_NEWER
        assert config.exclude == ["!**/.git/**"]
        assert config.log_level == "DEBUG"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("conflict_policy = [")

        with pytest.raises(ConfigParseError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('conflict_policy = "sometimes"\n')

        with pytest.raises(ConfigError, match="Invalid config content"):
            load_config(path)

    def test_default_path_uses_xdg(self, isolated_config: Path) -> None:
        isolated_config.mkdir(parents=True)
        (isolated_config / "config.toml").write_text('log_level = "ERROR"\n')

        assert load_config().log_level == "ERROR"

    def test_or_default_when_missing(self, tmp_path: Path) -> None:
        assert load_config_or_default(tmp_path / "absent.toml") == FsTreeConfig()

    def test_or_default_still_raises_for_broken_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("nonsense ===")

        with pytest.raises(ConfigParseError):
            load_config_or_default(path)


class TestSaveConfig:
    """Tests for writing configuration files."""

    def test_round_trip(self, tmp_path: Path) -> None:
        config = FsTreeConfig(
            conflict_policy=ConflictPolicy.SKIP_EXISTING,
            exclude=["!**/__pycache__/**"],
            temporary_root=tmp_path / "tmp",
        )
        path = tmp_path / "nested" / "config.toml"

        assert save_config(config, path) == path
        assert load_config(path) == config

    def test_written_as_toml(self, tmp_path: Path) -> None:
        path = save_config(FsTreeConfig(), tmp_path / "config.toml")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        assert data["conflict_policy"] == "replace_always"
        assert "temporary_root" not in data

    def test_overwrite_keeps_backup(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        save_config(FsTreeConfig(log_level="INFO"), path)

        save_config(FsTreeConfig(log_level="ERROR"), path)

        assert load_config(path).log_level == "ERROR"
        assert 'log_level = "INFO"' in backup_path(path).read_text()

    def test_backup_disabled(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        save_config(FsTreeConfig(atomic_backup=False), path)

        save_config(FsTreeConfig(atomic_backup=False), path)

        assert not backup_path(path).exists()

    def test_backup_argument_overrides_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        save_config(FsTreeConfig(), path)

        save_config(FsTreeConfig(), path, backup=False)

        assert not backup_path(path).exists()

    def test_default_path(self, isolated_config: Path) -> None:
        path = save_config(FsTreeConfig())

        assert path == isolated_config / "config.toml"
        assert path.is_file()

    def test_write_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(ConfigError, match="Failed to write config"):
            save_config(FsTreeConfig(), blocker / "config.toml")
