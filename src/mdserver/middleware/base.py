"""
=============================================================================
MIDDLEWARE INTERFACE
=============================================================================

Chain of Responsibility: each middleware either answers the request
itself (short-circuit) or passes it on with next(request), and may touch
the response on the way back out.

    pipeline = MiddlewarePipeline()
    pipeline.add(LoggingMiddleware())          # outermost
    pipeline.add(TLSMiddleware(config))
    pipeline.add(DigestAuthMiddleware(auth))   # innermost
    handler = pipeline.wrap(site_handler)

    request ─► Logging ─► TLS ─► DigestAuth ─► SiteHandler
    response ◄─ Logging ◄─ TLS ◄─ DigestAuth ◄─┘

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class StampMiddleware(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Stamp", "1")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle `request`, calling next(request) unless short-circuiting."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware around a final handler; first added is outermost."""

    def __init__(self):
        self._layers: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._layers.append(middleware)
        logger.debug(f"Pipeline layer {len(self._layers)}: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """add() each argument in order."""
        for layer in middleware:
            self.add(layer)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around `handler`.

        Folding from the innermost layer out turns [A, B, C] into
        A(B(C(handler))).
        """
        chain = handler
        for layer in self._layers[::-1]:
            chain = partial(_call_layer, layer, chain)
        return chain

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._layers)


def _call_layer(layer: Middleware, next_handler: NextHandler, request: HTTPRequest) -> HTTPResponse:
    return layer(request, next_handler)
