"""
=============================================================================
TLS MIDDLEWARE
=============================================================================

    plain request, enforcement says HTTPS  ──►  303 https://host/path
    anything else                          ──►  next(request)

and, when an HTTPS listener is configured, Strict-Transport-Security on
every response, redirects included.

The redirect is decided before auth and before the cache, so an insecure
request never gets a 401 (which would invite sending credentials in the
clear) and never reaches cached content.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..config import ServerConfig
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, see_other
from ..security.digest import route_of
from ..security.tls_policy import HSTS_HEADER, HSTS_VALUE, requires_redirect, upgrade_location


logger = logging.getLogger(__name__)


class TLSMiddleware(Middleware):
    """HTTPS upgrade redirects plus HSTS."""

    def __init__(self, config: ServerConfig):
        self.config = config

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = self._upgrade(request)
        if response is None:
            response = next(request)

        if self.config.tls is not None:
            response.set_header(HSTS_HEADER, HSTS_VALUE)
        return response

    def _upgrade(self, request: HTTPRequest):
        """A 303 to the HTTPS listener, or None to carry on."""
        if self.config.tls is None:
            return None

        route = route_of(request.path)
        route_is_secret = bool(route) and route in self.config.secrets

        if not requires_redirect(request.secure, self.config.enforcement, route_is_secret):
            return None

        location = upgrade_location(self.config.host, self.config.tls.port, request.path)
        logger.debug(f"Upgrading {request.path} to {location}")
        return see_other(location)
