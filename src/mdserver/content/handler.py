"""
=============================================================================
SITE HANDLER
=============================================================================

The innermost handler of the middleware pipeline: everything after the TLS
and auth checks.

    request.path
        │
        ▼
    cache.lookup ──hit──────────────────────────────┐
        │ miss                                      │
        ▼                                           │
    resolver.resolve ──► ResolvedTarget             │
        │                                           │
        ▼                                           │
    LITERAL / FILTERED ──► renderer.render          │
    REDIRECT           ──► Redirect 301             │
    NOT_FOUND          ──► NotFound                 │
        │                                           │
        ▼                                           │
    cache.store (every outcome, errors included)    │
        │                                           │
        ▼                                           ▼
    outcome.to_response(request) ─────────────► HTTPResponse

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .cache import ResponseCache
from .outcome import Outcome, NotFound, Redirect
from .renderer import ContentRenderer
from .resolver import PathResolver, ResolvedTarget, TargetKind


logger = logging.getLogger(__name__)


class SiteHandler:
    """Serves the site tree with memoized outcomes."""

    def __init__(
        self,
        resolver: PathResolver,
        renderer: ContentRenderer,
        cache: ResponseCache,
    ):
        self.resolver = resolver
        self.renderer = renderer
        self.cache = cache

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        return self.outcome_for(request.path).to_response(request)

    def outcome_for(self, path: str) -> Outcome:
        """The Outcome for `path`, from the cache or freshly computed."""
        outcome = self.cache.lookup(path)
        if outcome is not None:
            return outcome

        outcome = self.build(self.resolver.resolve(path))
        self.cache.store(path, outcome)
        return outcome

    def build(self, target: ResolvedTarget) -> Outcome:
        if target.kind is TargetKind.REDIRECT:
            return Redirect(target.location)

        if target.kind is TargetKind.NOT_FOUND:
            return NotFound()

        logger.debug(f"Rendering {target.kind.value} target {target.path}")
        return self.renderer.render(target.path)
