"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

TreeBuilder = Callable[..., Path]


def _set_mtime(path: Path, timestamp: float) -> None:
    os.utime(path, (timestamp, timestamp))


def _listing(root: Path) -> list[str]:
    entries: list[str] = []
    for path in root.rglob("*"):
        relative = path.relative_to(root).as_posix()
        entries.append(relative + "/" if path.is_dir() else relative)
    return sorted(entries)


@pytest.fixture
def set_mtime() -> Callable[[Path, float], None]:
    """Set both access and modification time of a path."""
    return _set_mtime


@pytest.fixture
def listing() -> Callable[[Path], list[str]]:
    """All entries below a root as sorted POSIX paths, directories with a '/'."""
    return _listing


@pytest.fixture
def make_tree(tmp_path: Path) -> TreeBuilder:
    """Build a directory tree from a list of relative paths.

    Paths ending with "/" become directories, everything else becomes a
    file whose content is its own relative path.

    Example:
        root = make_tree("src", ["a.txt", "sub/b.py", "empty/"])
    """

    def build(name: str, entries: list[str]) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for entry in entries:
            target = root / entry
            if entry.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(entry)
        return root

    return build


@pytest.fixture
def sample_tree(make_tree: TreeBuilder) -> Path:
    """A small source tree used by many traversal tests."""
    return make_tree(
        "src",
        [
            "a.txt",
            "b.py",
            "docs/readme.md",
            "docs/guide/intro.md",
            "pkg/__init__.py",
            "pkg/core.py",
            "pkg/__pycache__/core.pyc",
            "empty/",
        ],
    )


@pytest.fixture
def isolated_config(tmp_path: Path) -> Iterator[Path]:
    """Point XDG_CONFIG_HOME at a temporary directory."""
    config_home = tmp_path / "xdg-config"
    previous = os.environ.get("XDG_CONFIG_HOME")
    os.environ["XDG_CONFIG_HOME"] = str(config_home)
    yield config_home / "fstree"
    if previous is None:
        os.environ.pop("XDG_CONFIG_HOME", None)
    else:
        os.environ["XDG_CONFIG_HOME"] = previous
