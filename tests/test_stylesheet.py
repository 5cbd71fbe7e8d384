# =============================================================================
# KILN STYLESHEET TESTS
# =============================================================================
# Content-driven emission, theme token purge, ordering and idempotence.
# =============================================================================

from pathlib import Path

import pytest

from kiln.core.scanner import StyleBuildError
from kiln.core.stylesheet import HEADER, StyleBuilder
from kiln.domain.theme import ThemeConfig

OUTPUT = Path("src/static/output.css")


def _page(root: Path, classes: str) -> None:
    (root / "index.html").write_text(f'<div class="{classes}"></div>\n')


class TestStyleBuild:
    """Tests for StyleBuilder.build."""

    def test_writes_stylesheet_for_referenced_classes(self, content_tree):
        report = StyleBuilder(ThemeConfig(), root=content_tree, output=OUTPUT).build()

        css = (content_tree / OUTPUT).read_text()
        assert css.startswith(HEADER)
        assert ".px-4 {\n  padding-left: 1rem;\n  padding-right: 1rem;\n}" in css
        assert ".hover\\:bg-gray-200:hover {" in css
        assert report.changed is True
        assert "md:grid-cols-3" in report.classes
        assert len(report.files) == 2

    def test_exact_output_for_single_class(self, tmp_path):
        _page(tmp_path, "p-4")
        StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT).build()

        assert (tmp_path / OUTPUT).read_text() == HEADER + ".p-4 {\n  padding: 1rem;\n}\n"

    def test_media_rules_follow_base_rules(self, content_tree):
        StyleBuilder(ThemeConfig(), root=content_tree, output=OUTPUT).build()

        css = (content_tree / OUTPUT).read_text()
        media = css.index("@media (min-width: 768px) {\n  .md\\:grid-cols-3 {")
        assert css.index(".grid-cols-1 {") < media
        assert css.index(".px-4 {") < media

    def test_screens_emitted_smallest_first(self, tmp_path):
        _page(tmp_path, "xl:p-1 sm:p-2 lg:p-3")
        StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT).build()

        css = (tmp_path / OUTPUT).read_text()
        assert css.index("640px") < css.index("1024px") < css.index("1280px")

    def test_variable_defaults_only_when_needed(self, tmp_path):
        _page(tmp_path, "p-4")
        builder = StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT)
        builder.build()
        assert "--tw-" not in (tmp_path / OUTPUT).read_text()

        _page(tmp_path, "p-4 shadow-md")
        builder.build()
        assert "*, ::before, ::after {\n  --tw-translate-x: 0;" in (tmp_path / OUTPUT).read_text()

    def test_keyframes_emitted_with_animation(self, tmp_path):
        _page(tmp_path, "animate-spin")
        StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT).build()

        css = (tmp_path / OUTPUT).read_text()
        assert "@keyframes spin {" in css
        assert "@keyframes ping" not in css


class TestPurge:
    """Theme tokens and utilities appear only when something references them."""

    def test_unused_theme_tokens_not_emitted(self, tmp_path):
        _page(tmp_path, "p-4")
        StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT).build()

        css = (tmp_path / OUTPUT).read_text()
        assert "Poppins" not in css
        assert "#ffcc03" not in css
        assert "drop-shadow" not in css

    def test_safelisted_class_emitted_without_usage(self, tmp_path):
        _page(tmp_path, "p-4")
        theme = ThemeConfig(content=["*.html"], safelist=["drop-shadow-header"])
        report = StyleBuilder(theme, root=tmp_path, output=OUTPUT).build()

        assert ".drop-shadow-header {\n  filter: drop-shadow(-1px 1px 2px #000);\n}" in (
            (tmp_path / OUTPUT).read_text()
        )
        assert "drop-shadow-header" in report.classes

    def test_adding_and_removing_a_class(self, tmp_path):
        builder = StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT)

        _page(tmp_path, "p-4")
        builder.build()
        _page(tmp_path, "p-4 text-yellow-header")
        added = builder.build()
        assert added.changed is True
        assert ".text-yellow-header {\n  color: #ffcc03;\n}" in (tmp_path / OUTPUT).read_text()

        _page(tmp_path, "p-4")
        removed = builder.build()
        assert removed.changed is True
        assert "text-yellow-header" not in (tmp_path / OUTPUT).read_text()

    def test_unresolved_utilities_reported(self, tmp_path, capsys):
        _page(tmp_path, "p-4 bg-blue-500 lg:p-nope text-wobbly")
        report = StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT).build()

        assert report.unresolved == ["lg:p-nope", "text-wobbly"]
        assert "bg-blue-500" in report.classes
        assert "2 candidates did not resolve: lg:p-nope, text-wobbly" in capsys.readouterr().out

    def test_plain_words_not_reported(self, tmp_path):
        _page(tmp_path, "p-4 card")
        report = StyleBuilder(ThemeConfig(content=["*.html"]), root=tmp_path, output=OUTPUT).build()

        assert "card" not in report.unresolved

    def test_unknown_safelist_entry_warned(self, tmp_path, capsys):
        _page(tmp_path, "p-4")
        theme = ThemeConfig(content=["*.html"], safelist=["shadow-glow"])
        report = StyleBuilder(theme, root=tmp_path, output=OUTPUT).build()

        assert "shadow-glow" in report.unresolved
        assert "Safelisted classes match no utility: shadow-glow" in capsys.readouterr().out


class TestIdempotence:
    """Repeated builds over unchanged content leave the file untouched."""

    def test_second_build_unchanged(self, content_tree):
        builder = StyleBuilder(ThemeConfig(), root=content_tree, output=OUTPUT)
        first = builder.build()
        mtime = (content_tree / OUTPUT).stat().st_mtime_ns

        second = builder.build()

        assert second.changed is False
        assert second.digest == first.digest
        assert (content_tree / OUTPUT).stat().st_mtime_ns == mtime

    def test_output_inside_content_globs_is_not_rescanned(self, content_tree):
        theme = ThemeConfig(content=["*.html", "src/**/*"])
        builder = StyleBuilder(theme, root=content_tree, output=OUTPUT)

        builder.build()
        assert builder.build().changed is False

    def test_fresh_builder_reproduces_digest(self, content_tree):
        first = StyleBuilder(ThemeConfig(), root=content_tree, output=OUTPUT).build()
        (content_tree / OUTPUT).unlink()
        second = StyleBuilder(ThemeConfig(), root=content_tree, output=OUTPUT).build()

        assert second.changed is True
        assert second.digest == first.digest


class TestInputStylesheet:
    """Splicing generated rules into a hand-written stylesheet."""

    def test_directives_replaced(self, tmp_path):
        _page(tmp_path, "p-4")
        source = tmp_path / "src" / "input.css"
        source.parent.mkdir(parents=True)
        source.write_text(
            "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n\n"
            "body { margin: 0; }\n"
        )

        StyleBuilder(
            ThemeConfig(content=["*.html", "src/*.css"]),
            root=tmp_path,
            output=OUTPUT,
            input_css=Path("src/input.css"),
        ).build()

        css = (tmp_path / OUTPUT).read_text()
        assert "@tailwind" not in css
        assert css.index(".p-4 {") < css.index("body { margin: 0; }")

    def test_missing_input_stylesheet(self, tmp_path):
        _page(tmp_path, "p-4")
        builder = StyleBuilder(
            ThemeConfig(content=["*.html"]),
            root=tmp_path,
            output=OUTPUT,
            input_css=Path("missing.css"),
        )
        with pytest.raises(StyleBuildError):
            builder.build()
