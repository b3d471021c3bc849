"""Unit tests for theme module.

Tests for theme loading, validation, and Rich theme generation.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import devstrap.core.theme as theme_module
import pytest
from devstrap.core.theme import (
    ThemeColors,
    _load_toml_colors,
    get_rich_theme,
    get_theme,
    get_user_theme_path,
    load_theme,
)
from rich.theme import Theme


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        """ThemeColors has sensible defaults."""
        colors = ThemeColors()
        assert colors.header == "#69B9A1"
        assert colors.success == "#03b971"
        assert colors.unchanged == "#226666"

    def test_short_hex_accepted(self) -> None:
        """Three-digit hex codes are valid."""
        assert ThemeColors(muted="#abc").muted == "#abc"

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("ffffff", "must start with '#'"),
            ("#ff", "must be #RGB or #RRGGBB"),
            ("#gggggg", "invalid hex color"),
        ],
    )
    def test_invalid_colors(self, value: str, message: str) -> None:
        """Malformed colors are rejected with a specific message."""
        with pytest.raises(ValueError, match=message):
            ThemeColors(text=value)

    def test_extra_fields_forbidden(self) -> None:
        """ThemeColors rejects unknown fields."""
        with pytest.raises(ValueError):
            ThemeColors(unknown_field="#ffffff")  # type: ignore[call-arg]


class TestLoadTomlColors:
    """Tests for _load_toml_colors internal function."""

    def test_loads_string_values(self, tmp_path: Path) -> None:
        """Colors are read, non-string values dropped."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = "#000000"\nwarning = 3\n')

        assert _load_toml_colors(theme_file) == {"text": "#000000"}

    def test_returns_none_for_missing_file(self, tmp_path: Path) -> None:
        """Returns None when file doesn't exist."""
        assert _load_toml_colors(tmp_path / "nonexistent.toml") is None

    def test_returns_none_for_invalid_toml(self, tmp_path: Path) -> None:
        """Returns None for malformed TOML."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("not valid [ toml syntax")

        assert _load_toml_colors(theme_file) is None


class TestLoadTheme:
    """Tests for load_theme function."""

    def test_user_theme_overrides_defaults(self, tmp_path: Path) -> None:
        """User values replace only the colors they name."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nheader = "#ff0000"\n')

        with patch("devstrap.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors.header == "#ff0000"
        assert colors.success == "#03b971"

    def test_invalid_user_theme_falls_back(self, tmp_path: Path) -> None:
        """An invalid color falls back to the defaults."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nheader = "red"\n')

        with patch("devstrap.core.theme.get_user_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors == ThemeColors()


class TestGetRichTheme:
    """Tests for get_rich_theme function."""

    def test_includes_status_styles(self) -> None:
        """Styles used by the report table exist."""
        theme = get_rich_theme(ThemeColors())

        for style in ("success", "warning", "error", "unchanged", "disabled", "bold_header"):
            assert style in theme.styles


class TestGetTheme:
    """Tests for get_theme caching function."""

    def test_caches_theme(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """get_theme returns cached instance on subsequent calls."""
        monkeypatch.setattr(theme_module, "_cached_theme", None)

        theme1 = get_theme()
        theme2 = get_theme()

        assert isinstance(theme1, Theme)
        assert theme1 is theme2


class TestGetUserThemePath:
    """Tests for get_user_theme_path function."""

    def test_returns_xdg_config_path(self, home: Path) -> None:
        """Returns path under ~/.config/devstrap/."""
        assert get_user_theme_path() == home / ".config" / "devstrap" / "theme.toml"
