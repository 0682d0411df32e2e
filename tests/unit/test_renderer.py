"""
Unit tests for content classification and rendering.
"""

from pathlib import Path

import pytest

from mdserver.content.outcome import InternalError, Literal, Redirect, Rendered
from mdserver.content.renderer import (
    ContentKind,
    ContentRenderer,
    classify,
    markdown_to_html,
)
from mdserver.http.status_codes import HTTPStatus

from conftest import build_site


class TestClassify:

    @pytest.mark.parametrize("path, kind", [
        ("/site/index.md", ContentKind.MARKDOWN),
        ("/site/page.pug", ContentKind.MARKUP),
        ("/site/page.jade", ContentKind.MARKUP),
        ("/site/old.redirect", ContentKind.REDIRECT),
        ("/site/logo.png", ContentKind.LITERAL),
        ("/site/Makefile", ContentKind.LITERAL),
        ("/site/notes.md.bak", ContentKind.LITERAL),
    ])
    def test_suffix_table(self, path, kind):
        assert classify(path) is kind

    def test_suffix_is_case_sensitive(self):
        assert classify("/site/README.MD") is ContentKind.LITERAL


class TestMarkdownToHTML:

    def test_heading(self):
        assert "<h1>Hi</h1>" in markdown_to_html("# Hi\n")

    def test_fragment_ends_with_newline(self):
        assert markdown_to_html("# Hi\n") == "<h1>Hi</h1>\n"
        assert markdown_to_html("") == ""

    def test_strikethrough(self):
        assert "<del>old</del>" in markdown_to_html("~~old~~ new")

    def test_fenced_code(self):
        html = markdown_to_html("```\nx = 1\n```\n")

        assert "<pre><code>x = 1" in html

    def test_tables(self):
        html = markdown_to_html("| a | b |\n|---|---|\n| 1 | 2 |\n")

        assert "<table>" in html
        assert "<td>1</td>" in html


class TestMarkdownRendering:

    def test_wrapped_in_template(self, site: Path):
        renderer = ContentRenderer("<html>{{content}}</html>")

        outcome = renderer.render(str(site / "index.md"))

        assert isinstance(outcome, Rendered)
        assert outcome.content_type == "text/html; charset=utf-8"
        assert outcome.body == b"<html><h1>Hi</h1>\n</html>"

    def test_html_is_not_escaped(self, site: Path):
        outcome = ContentRenderer("{{ content }}").render(str(site / "guide.md"))

        assert b"<del>old</del>" in outcome.body

    def test_default_template(self, site: Path):
        outcome = ContentRenderer().render(str(site / "index.md"))

        assert b"<body><h1>Hi</h1>" in outcome.body
        assert b"charset=utf-8" in outcome.body

    def test_content_captured_once(self, tmp_path: Path):
        root = build_site(tmp_path, {"page.md": "# First"})
        outcome = ContentRenderer("{{ content }}").render(str(root / "page.md"))

        (root / "page.md").write_text("# Second")

        assert b"First" in outcome.body
        assert b"Second" not in outcome.body

    def test_missing_file_is_internal_error(self, tmp_path: Path):
        outcome = ContentRenderer().render(str(tmp_path / "gone.md"))

        assert isinstance(outcome, InternalError)
        assert "gone.md" in outcome.message

    def test_undecodable_file_is_internal_error(self, tmp_path: Path):
        (tmp_path / "bad.md").write_bytes(b"\xff\xfe\xfa")

        outcome = ContentRenderer().render(str(tmp_path / "bad.md"))

        assert isinstance(outcome, InternalError)


class TestMarkupRendering:

    def test_pug_page(self, site: Path):
        outcome = ContentRenderer().render(str(site / "page.pug"))

        assert isinstance(outcome, Rendered)
        assert outcome.content_type == "text/html; charset=utf-8"
        assert b"<p>Hello from pug</p>" in outcome.body

    def test_jade_page(self, tmp_path: Path):
        root = build_site(tmp_path, {"page.jade": "h2 Jade\n"})

        outcome = ContentRenderer().render(str(root / "page.jade"))

        assert b"<h2>Jade</h2>" in outcome.body

    def test_markup_failure_is_internal_error(self, tmp_path: Path):
        root = build_site(tmp_path, {"broken.pug": "div\n\t p Mixed indentation\n"})

        outcome = ContentRenderer().render(str(root / "broken.pug"))

        assert isinstance(outcome, InternalError)
        assert "broken.pug" in outcome.message
        assert "indentation" in outcome.message


class TestRedirectFiles:

    def test_target_is_trimmed(self, site: Path):
        outcome = ContentRenderer().render(str(site / "home.redirect"))

        assert outcome == Redirect("https://example.com/new-home", HTTPStatus.PERMANENT_REDIRECT)

    def test_blank_target_is_internal_error(self, site: Path):
        outcome = ContentRenderer().render(str(site / "blank.redirect"))

        assert isinstance(outcome, InternalError)

    def test_unreadable_target_is_internal_error(self, tmp_path: Path):
        outcome = ContentRenderer().render(str(tmp_path / "missing.redirect"))

        assert isinstance(outcome, InternalError)


class TestLiteralFiles:

    def test_other_suffixes_are_literal(self, site: Path):
        path = str(site / "notes.txt")

        assert ContentRenderer().render(path) == Literal(path)

    def test_literal_does_not_read_the_file(self, tmp_path: Path):
        path = str(tmp_path / "not-yet-there.bin")

        assert ContentRenderer().render(path) == Literal(path)
