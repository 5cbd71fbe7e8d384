"""
Tests for the theme configuration record.
"""

import pytest
from pydantic import ValidationError

from kiln.domain.theme import ThemeConfig


class TestThemeDefaults:
    """The defaults describe the gallery's own theme."""

    def test_default_content_globs(self):
        theme = ThemeConfig()
        assert theme.content_globs == ["*.html", "./src/**/*.rs"]

    def test_default_tokens(self):
        theme = ThemeConfig()
        assert theme.font_family == {"poppins": ["Poppins", "sans-serif"]}
        assert theme.colors == {"yellow-header": "#ffcc03"}
        assert theme.drop_shadow == {"header": ["-1px 1px 2px #000"]}
        assert theme.safelist == []


class TestThemeValidation:
    """Tests for ThemeConfig validation."""

    def test_accepts_tailwind_style_keys(self):
        """The camelCase names used in tailwind configs are accepted."""
        theme = ThemeConfig(
            content=["templates/**/*.html"],
            fontFamily={"serif": ["Georgia"]},
            dropShadow={"soft": ["0 1px 1px #0003"]},
        )
        assert theme.content_globs == ["templates/**/*.html"]
        assert theme.font_family == {"serif": ["Georgia"]}
        assert theme.drop_shadow == {"soft": ["0 1px 1px #0003"]}

    def test_duplicate_globs_collapse_in_order(self):
        theme = ThemeConfig(content=["*.html", "src/**/*.rs", "*.html"])
        assert theme.content_globs == ["*.html", "src/**/*.rs"]

    def test_empty_glob_list_rejected(self):
        with pytest.raises(ValidationError):
            ThemeConfig(content=[])

    def test_blank_glob_rejected(self):
        with pytest.raises(ValidationError):
            ThemeConfig(content=["*.html", "  "])

    def test_invalid_token_name_rejected(self):
        with pytest.raises(ValidationError):
            ThemeConfig(colors={"yellow header": "#ffcc03"})

    def test_blank_colour_rejected(self):
        with pytest.raises(ValidationError):
            ThemeConfig(colors={"brand": ""})

    def test_font_family_needs_a_font(self):
        with pytest.raises(ValidationError):
            ThemeConfig(fontFamily={"poppins": []})

    def test_theme_is_immutable(self):
        theme = ThemeConfig()
        with pytest.raises(ValidationError):
            theme.safelist = ["p-4"]


class TestFlatColors:
    """Tests for nested colour maps."""

    def test_nested_colours_flatten_to_shades(self):
        theme = ThemeConfig(colors={"brand": {"50": "#fefce8", "900": "#713f12"}, "ink": "#111"})
        assert theme.flat_colors() == {
            "brand-50": "#fefce8",
            "brand-900": "#713f12",
            "ink": "#111",
        }
