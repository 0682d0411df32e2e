"""
Digest authentication middleware.

Requests under a secret route must carry valid credentials before they
reach the cache; anything else is answered with a fresh 401 challenge.
Nothing here is cached.
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..security.digest import DigestAuth, route_of


logger = logging.getLogger(__name__)


class DigestAuthMiddleware(Middleware):

    def __init__(self, auth: DigestAuth):
        self.auth = auth

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        route = route_of(request.path)

        if self.auth.is_secret_route(route) and not self.auth.check(request, route):
            if request.authorization:
                logger.warning(
                    f"Rejected credentials for {request.path} "
                    f"from {request.client_address[0]}"
                )
            return self.auth.challenge(route)

        return next(request)
