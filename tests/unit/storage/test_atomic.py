"""Unit tests for AtomicWriter.

Tests that readers never see partial content, backup handling, discard
on error, append mode and failure chaining when the rename fails.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import fstree.storage.atomic as atomic_module
import pytest
from fstree.core.errors import AtomicWriteError
from fstree.storage.atomic import TEMP_SUFFIX, AtomicWriter, backup_path


def _temp_files(directory: Path) -> list[Path]:
    return sorted(directory.glob(f"*{TEMP_SUFFIX}"))


class TestAtomicWriter:
    """Tests for the write-then-rename protocol."""

    def test_reader_never_sees_unclosed_write(self, tmp_path: Path) -> None:
        """After 'ok' is committed, an unclosed 'failed' write stays invisible."""
        target = tmp_path / "state.txt"
        with AtomicWriter(target) as out:
            out.write("ok")

        writer = AtomicWriter(target)
        writer.write("failed")
        writer.flush()

        assert target.read_text() == "ok"
        writer.discard()
        assert target.read_text() == "ok"

    def test_close_publishes_and_removes_temp(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "out.txt"

        with AtomicWriter(target) as out:
            out.write("hello")
            assert not target.exists()

        assert target.read_text() == "hello"
        assert _temp_files(target.parent) == []

    def test_backup_keeps_previous_content(self, tmp_path: Path) -> None:
        target = tmp_path / "config.toml"
        target.write_text("old")

        with AtomicWriter(target) as out:
            out.write("new")

        assert target.read_text() == "new"
        assert backup_path(target).read_text() == "old"

    def test_backup_can_be_disabled(self, tmp_path: Path) -> None:
        target = tmp_path / "config.toml"
        target.write_text("old")

        with AtomicWriter(target, backup=False) as out:
            out.write("new")

        assert not backup_path(target).exists()

    def test_exception_discards_write(self, tmp_path: Path) -> None:
        target = tmp_path / "data.txt"
        target.write_text("original")

        with pytest.raises(RuntimeError), AtomicWriter(target) as out:
            out.write("partial")
            raise RuntimeError("boom")

        assert target.read_text() == "original"
        assert _temp_files(tmp_path) == []

    def test_append_mode_starts_from_current_content(self, tmp_path: Path) -> None:
        target = tmp_path / "log.txt"
        target.write_text("one\n")

        with AtomicWriter(target, "a") as out:
            out.write("two\n")

        assert target.read_text() == "one\ntwo\n"

    def test_binary_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "blob.bin"

        with AtomicWriter(target, "wb") as out:
            out.write(b"\x00\x01")

        assert target.read_bytes() == b"\x00\x01"

    def test_invalid_mode_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unsupported mode"):
            AtomicWriter(tmp_path / "x", "r")

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        writer = AtomicWriter(tmp_path / "x.txt")
        writer.write("x")
        writer.close()
        writer.close()

        assert writer.closed

    def test_rename_failure_falls_back_to_copy(self, tmp_path: Path) -> None:
        target = tmp_path / "x.txt"
        writer = AtomicWriter(target)
        writer.write("content")

        with patch("fstree.storage.atomic.os.replace", side_effect=OSError("cross-device")):
            writer.close()

        assert target.read_text() == "content"
        assert _temp_files(tmp_path) == []

    def test_double_failure_chains_causes(self, tmp_path: Path) -> None:
        target = tmp_path / "x.txt"
        writer = AtomicWriter(target)
        writer.write("content")

        with (
            patch("fstree.storage.atomic.os.replace", side_effect=OSError("rename failed")),
            patch("fstree.storage.atomic.shutil.copyfile", side_effect=OSError("copy failed")),
            pytest.raises(AtomicWriteError) as exc_info,
        ):
            writer.close()

        error = exc_info.value
        assert error.destination == target
        assert [str(c) for c in error.causes] == ["rename failed", "copy failed"]
        assert isinstance(error.__cause__, OSError)
        assert _temp_files(tmp_path) == []
        assert not target.exists()

    def test_pending_temp_files_cleaned_at_exit(self, tmp_path: Path) -> None:
        writer = AtomicWriter(tmp_path / "x.txt")
        writer.write("never committed")
        writer.flush()
        assert _temp_files(tmp_path) == [writer.temp_path]

        atomic_module._cleanup_pending()

        assert _temp_files(tmp_path) == []
