"""Unit tests for theme module.

Tests for theme loading, validation, and Rich theme generation.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import fstree.core.theme as theme_module
import pytest
from fstree.core.theme import (
    ThemeColors,
    _load_toml_colors,
    get_rich_theme,
    get_theme,
    load_theme,
    reload_theme,
)
from rich.theme import Theme


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        """ThemeColors has sensible defaults."""
        colors = ThemeColors()
        assert colors.text == "#ffffff"
        assert colors.header == "#69B9A1"
        assert colors.copied == "#c1ff62"
        assert colors.deleted == "#f53263"

    def test_valid_hex_colors(self) -> None:
        colors = ThemeColors(text="#AABBCC", muted="#abc")
        assert colors.text == "#AABBCC"
        assert colors.muted == "#abc"

    def test_strips_whitespace(self) -> None:
        assert ThemeColors(text="  #123456 ").text == "#123456"

    def test_invalid_hex_no_hash(self) -> None:
        """ThemeColors rejects colors without # prefix."""
        with pytest.raises(ValueError, match="must start with '#'"):
            ThemeColors(text="ffffff")

    def test_invalid_hex_wrong_length(self) -> None:
        with pytest.raises(ValueError, match="must be #RGB or #RRGGBB"):
            ThemeColors(text="#ff")

    def test_invalid_hex_chars(self) -> None:
        with pytest.raises(ValueError, match="invalid hex color"):
            ThemeColors(moved="#gggggg")

    def test_non_string_rejected(self) -> None:
        with pytest.raises(ValueError, match="color must be a string"):
            ThemeColors(text=123)  # type: ignore[arg-type]

    def test_extra_fields_forbidden(self) -> None:
        """ThemeColors rejects unknown fields."""
        with pytest.raises(ValueError):
            ThemeColors(unknown_field="#ffffff")  # type: ignore[call-arg]


class TestLoadTomlColors:
    """Tests for _load_toml_colors internal function."""

    def test_loads_valid_toml(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = "#000000"\nskipped = "#aabbcc"\nsize = 3\n')

        result = _load_toml_colors(theme_file)

        assert result == {"text": "#000000", "skipped": "#aabbcc"}

    def test_returns_none_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_toml_colors(tmp_path / "nonexistent.toml") is None

    def test_returns_none_for_invalid_toml(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("not valid [ toml syntax")

        assert _load_toml_colors(theme_file) is None

    def test_returns_none_for_invalid_colors_section(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('colors = "red"\n')

        assert _load_toml_colors(theme_file) is None

    def test_returns_empty_dict_for_missing_colors_section(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[other]\nkey = "value"\n')

        assert _load_toml_colors(theme_file) == {}


class TestLoadTheme:
    """Tests for load_theme function."""

    def test_loads_bundled_theme(self, tmp_path: Path) -> None:
        """Loads theme from the bundled data file."""
        with patch(
            "fstree.core.theme.get_user_theme_path",
            return_value=tmp_path / "absent.toml",
        ):
            colors = load_theme()

        assert colors.text == "#ffffff"
        assert colors.directory == "#69B9A1"
        assert colors.modified == "#faf870"

    def test_user_theme_overrides_bundled(self, tmp_path: Path) -> None:
        """User theme overrides bundled theme values."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\ncopied = "#ff0000"\n')

        with patch("fstree.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors.copied == "#ff0000"
        assert colors.moved == "#0e8ac8"

    def test_invalid_user_value_falls_back_to_defaults(self, tmp_path: Path) -> None:
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\ncopied = "green"\n')

        with patch("fstree.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors == ThemeColors()

    def test_graceful_fallback_on_invalid_user_theme(self, tmp_path: Path) -> None:
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text("invalid toml [[[")

        with patch("fstree.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors.header == "#69B9A1"


class TestGetRichTheme:
    """Tests for get_rich_theme function."""

    def test_returns_rich_theme(self) -> None:
        assert isinstance(get_rich_theme(ThemeColors()), Theme)

    def test_includes_action_styles(self) -> None:
        """Every traversal action and watch kind has a style."""
        theme = get_rich_theme(ThemeColors())

        for name in ("copied", "moved", "deleted", "skipped", "observed", "created", "modified"):
            assert f"action.{name}" in theme.styles
        assert "entry.directory" in theme.styles
        assert "entry.size" in theme.styles

    def test_uses_provided_colors(self) -> None:
        theme = get_rich_theme(ThemeColors(header="#123456"))

        assert theme.styles["header"].color is not None
        assert theme.styles["header"].color.name == "#123456"


class TestGetTheme:
    """Tests for get_theme caching function."""

    def test_caches_theme(self) -> None:
        theme_module._cached_theme = None

        assert get_theme() is get_theme()

    def test_reload_creates_new_theme(self) -> None:
        theme_module._cached_theme = None

        original = get_theme()
        reloaded = reload_theme()

        assert reloaded is not original
        assert get_theme() is reloaded
