"""
=============================================================================
SITE CONTENT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ resolver.py   URL path → ResolvedTarget                             │
    │ renderer.py   file → Outcome (Markdown, pug, .redirect, literal)    │
    │ outcome.py    Outcome variants → HTTPResponse                       │
    │ cache.py      URL path → Outcome with TTL and flush                 │
    │ handler.py    ties the four together                                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .cache import ResponseCache
from .handler import SiteHandler
from .outcome import Outcome, Literal, Rendered, Redirect, NotFound, InternalError
from .renderer import ContentRenderer, ContentKind, RenderError, classify, markdown_to_html
from .resolver import PathResolver, ResolvedTarget, TargetKind

__all__ = [
    "ResponseCache",
    "SiteHandler",

    "Outcome",
    "Literal",
    "Rendered",
    "Redirect",
    "NotFound",
    "InternalError",

    "ContentRenderer",
    "ContentKind",
    "RenderError",
    "classify",
    "markdown_to_html",

    "PathResolver",
    "ResolvedTarget",
    "TargetKind",
]
