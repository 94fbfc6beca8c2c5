"""Unit tests for the watch command."""

from pathlib import Path
from unittest.mock import patch

from fstree.cli.main import app
from fstree.walk.option import Option
from fstree.watch.engine import WatchEngine
from typer.testing import CliRunner
from watchdog.observers.polling import PollingObserver

runner = CliRunner()


def _polling_engine(root: Path, option: Option) -> WatchEngine:
    return WatchEngine(root, option, observer_factory=PollingObserver)


class TestWatchCommand:
    """Tests for fstree watch."""

    def test_stops_after_timeout(self, sample_tree: Path, tmp_path: Path) -> None:
        with patch("fstree.cli.commands.watch.WatchEngine", _polling_engine):
            result = runner.invoke(
                app,
                ["--config", str(tmp_path / "c.toml"), "watch", str(sample_tree), "-t", "0.3"],
            )

        assert result.exit_code == 0, result.output
        assert "Watching" in result.output
        assert "Stopped." in result.output

    def test_requires_directory(self, sample_tree: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["--config", str(tmp_path / "c.toml"), "watch", str(sample_tree / "a.txt")]
        )

        assert result.exit_code == 1
        assert "Not a directory" in result.output
