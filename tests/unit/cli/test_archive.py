"""Unit tests for the pack and unpack commands."""

import zipfile
from collections.abc import Callable
from pathlib import Path

from fstree.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()

Listing = Callable[[Path], list[str]]


def _invoke(tmp_path: Path, *args: str):  # noqa: ANN202
    return runner.invoke(app, ["--config", str(tmp_path / "config.toml"), *args])


class TestPackCommand:
    """Tests for fstree pack."""

    def test_pack_zip(self, sample_tree: Path, tmp_path: Path) -> None:
        archive = tmp_path / "out" / "src.zip"

        result = _invoke(tmp_path, "pack", str(sample_tree), str(archive))

        assert result.exit_code == 0, result.output
        assert "Packed 7 files" in result.output
        with zipfile.ZipFile(archive) as zf:
            assert "pkg/core.py" in zf.namelist()

    def test_pack_keep_root_with_glob(self, sample_tree: Path, tmp_path: Path) -> None:
        archive = tmp_path / "docs.zip"

        result = _invoke(
            tmp_path, "pack", str(sample_tree), str(archive), "-g", "**/*.md", "--keep-root"
        )

        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(archive) as zf:
            assert sorted(zf.namelist()) == ["src/docs/guide/intro.md", "src/docs/readme.md"]

    def test_pack_uses_configured_temporary_root(self, sample_tree: Path, tmp_path: Path) -> None:
        area_root = tmp_path / "area"
        (tmp_path / "config.toml").write_text(f'temporary_root = "{area_root.as_posix()}"\n')

        result = _invoke(tmp_path, "pack", str(sample_tree), str(tmp_path / "src.tar.gz"))

        assert result.exit_code == 0, result.output
        assert (tmp_path / "src.tar.gz").is_file()
        assert area_root.is_dir()
        assert list(area_root.iterdir()) == []

    def test_pack_unsupported_format(self, sample_tree: Path, tmp_path: Path) -> None:
        result = _invoke(tmp_path, "pack", str(sample_tree), str(tmp_path / "src.rar"))

        assert result.exit_code == 1
        assert "Pack failed" in result.output
        assert not (tmp_path / "src.rar").exists()

    def test_pack_requires_directory(self, sample_tree: Path, tmp_path: Path) -> None:
        result = _invoke(tmp_path, "pack", str(sample_tree / "a.txt"), str(tmp_path / "a.zip"))

        assert result.exit_code == 1
        assert "Not a directory" in result.output


class TestUnpackCommand:
    """Tests for fstree unpack."""

    def test_round_trip(self, sample_tree: Path, tmp_path: Path, listing: Listing) -> None:
        archive = tmp_path / "src.tar"
        _invoke(tmp_path, "pack", str(sample_tree), str(archive))

        result = _invoke(tmp_path, "unpack", str(archive), str(tmp_path / "out"))

        assert result.exit_code == 0, result.output
        assert "Extracted 7 files" in result.output
        assert listing(tmp_path / "out") == [e for e in listing(sample_tree) if e != "empty/"]

    def test_keep_root_and_glob(self, sample_tree: Path, tmp_path: Path) -> None:
        archive = tmp_path / "bundle.zip"
        _invoke(tmp_path, "pack", str(sample_tree), str(archive))

        result = _invoke(
            tmp_path, "unpack", str(archive), str(tmp_path / "out"), "-g", "*.txt", "--keep-root"
        )

        assert result.exit_code == 0, result.output
        assert (tmp_path / "out" / "bundle" / "a.txt").is_file()
        assert not (tmp_path / "out" / "bundle" / "b.py").exists()

    def test_skip_existing_reports_kept(self, sample_tree: Path, tmp_path: Path) -> None:
        archive = tmp_path / "src.zip"
        _invoke(tmp_path, "pack", str(sample_tree), str(archive), "-g", "*.txt")
        existing = tmp_path / "out" / "a.txt"
        existing.parent.mkdir()
        existing.write_text("keep me")

        result = _invoke(
            tmp_path, "unpack", str(archive), str(tmp_path / "out"), "-p", "skip_existing"
        )

        assert result.exit_code == 0, result.output
        assert "1 kept" in result.output
        assert existing.read_text() == "keep me"

    def test_missing_archive(self, tmp_path: Path) -> None:
        result = _invoke(tmp_path, "unpack", str(tmp_path / "none.zip"), str(tmp_path / "out"))

        assert result.exit_code == 1
        assert "Path not found" in result.output
