"""XDG-compliant path management for fstree.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, plus the shared root
of the temporary area.

XDG defaults:
- Config: ~/.config/fstree/
- Temporary area: <system temp dir>/fstree/
"""

import os
import tempfile
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "fstree"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/fstree/ (or XDG_CONFIG_HOME/fstree/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        Path to ~/.config/fstree/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_user_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/fstree/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_temporary_root() -> Path:
    """Get the machine-wide root of the temporary area.

    Every process using a TemporaryArea creates its own ``temporary*``
    sub-directory below this root.

    Returns:
        Path to <system temp dir>/fstree.
    """
    return Path(tempfile.gettempdir()) / APP_NAME


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_temporary_root(root: Path | None = None) -> Path:
    """Create the temporary area root if it doesn't exist.

    Args:
        root: Optional override for the root. Defaults to get_temporary_root().

    Returns:
        Path to the temporary area root.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(root if root is not None else get_temporary_root(), "temporary")
