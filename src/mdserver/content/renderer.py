"""
=============================================================================
CONTENT RENDERING
=============================================================================

Turns a resolved file into an Outcome.

=============================================================================
DISPATCH
=============================================================================

    classify(path) ──► ContentKind ──► _BUILDERS[kind](path) ──► Outcome

    ┌────────────────────┬──────────────┬─────────────────────────────────┐
    │ Suffix             │ ContentKind  │ Outcome                         │
    ├────────────────────┼──────────────┼─────────────────────────────────┤
    │ .md                │ MARKDOWN     │ Rendered (template-wrapped)     │
    │ .jade, .pug        │ MARKUP       │ Rendered                        │
    │ .redirect          │ REDIRECT     │ Redirect 308                    │
    │ anything else      │ LITERAL      │ Literal (read at serve time)    │
    └────────────────────┴──────────────┴─────────────────────────────────┘

Rendered outcomes capture their bytes once, here. Serving the same cached
outcome again never touches the source file.

Any failure (unreadable file, bad pug syntax, template error) becomes an
InternalError outcome carrying the message, which the cache stores like
any other outcome.

=============================================================================
"""

import logging
import os
from enum import Enum
from typing import Callable, Dict

import jinja2
import markdown
from markdown.extensions import Extension
from markdown.extensions.fenced_code import FencedCodeExtension
from markdown.extensions.tables import TableExtension
from markdown.inlinepatterns import SimpleTagInlineProcessor
from pypugjs.ext.html import process_pugjs

from ..config import DEFAULT_TEMPLATE
from ..http.status_codes import HTTPStatus
from .outcome import Outcome, Literal, Rendered, Redirect, InternalError


logger = logging.getLogger(__name__)


HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class RenderError(Exception):
    """A source file couldn't be read or transformed."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path
        self.message = message


class ContentKind(Enum):
    MARKDOWN = "markdown"
    MARKUP = "markup"
    REDIRECT = "redirect"
    LITERAL = "literal"


_SUFFIXES: Dict[str, ContentKind] = {
    ".md": ContentKind.MARKDOWN,
    ".jade": ContentKind.MARKUP,
    ".pug": ContentKind.MARKUP,
    ".redirect": ContentKind.REDIRECT,
}


def classify(path: str) -> ContentKind:
    """
    Pick the content kind from the file name alone (no I/O).

        >>> classify("/site/index.md")
        <ContentKind.MARKDOWN: 'markdown'>
        >>> classify("/site/logo.png")
        <ContentKind.LITERAL: 'literal'>
    """
    _, ext = os.path.splitext(path)
    return _SUFFIXES.get(ext, ContentKind.LITERAL)


# =============================================================================
# MARKDOWN
# =============================================================================

class StrikethroughExtension(Extension):
    """~~text~~ → <del>text</del>"""

    def extendMarkdown(self, md):
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(r"(~~)(.+?)~~", "del"), "del", 175
        )


def markdown_to_html(source: str) -> str:
    """Markdown fragment → HTML fragment, with fenced code, tables and ~~strike~~."""
    # Markdown instances carry per-document state; build one per call.
    html = markdown.markdown(
        source,
        extensions=[
            FencedCodeExtension(),
            TableExtension(),
            StrikethroughExtension(),
        ],
    )
    # Block-level output ends in a newline, including the last block
    return html + "\n" if html else html


# =============================================================================
# RENDERER
# =============================================================================

class ContentRenderer:
    """
    Builds Outcomes for resolved files.

    The page template is compiled once; jinja2.Template objects are safe
    to render from several threads at once.
    """

    def __init__(self, template: str = DEFAULT_TEMPLATE):
        self.template = jinja2.Template(template)
        self._builders: Dict[ContentKind, Callable[[str], Outcome]] = {
            ContentKind.MARKDOWN: self._render_markdown,
            ContentKind.MARKUP: self._render_markup,
            ContentKind.REDIRECT: self._read_redirect,
            ContentKind.LITERAL: Literal,
        }

    def render(self, path: str) -> Outcome:
        """Build the Outcome for the file at `path`."""
        kind = classify(path)
        try:
            return self._builders[kind](path)
        except RenderError as e:
            logger.error(f"Error rendering {e.path}: {e.message}")
            return InternalError(e.message)

    def _render_markdown(self, path: str) -> Outcome:
        source = _read_text(path)
        try:
            page = self.template.render(content=markdown_to_html(source))
        except jinja2.TemplateError as e:
            raise RenderError(path, f"template error: {e}")
        return Rendered(page.encode("utf-8"), HTML_CONTENT_TYPE, source=path)

    def _render_markup(self, path: str) -> Outcome:
        source = _read_text(path)
        try:
            page = process_pugjs(source, filename=path)
        except Exception as e:
            # pypugjs raises plain Exception subclasses for syntax errors
            raise RenderError(path, f"couldn't render {os.path.basename(path)}: {e}")
        return Rendered(page.encode("utf-8"), HTML_CONTENT_TYPE, source=path)

    def _read_redirect(self, path: str) -> Outcome:
        target = _read_text(path).strip()
        if not target:
            raise RenderError(path, f"empty redirect target in {os.path.basename(path)}")
        return Redirect(target, HTTPStatus.PERMANENT_REDIRECT)


def _read_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise RenderError(path, str(e))
