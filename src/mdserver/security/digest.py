"""
=============================================================================
DIGEST ACCESS AUTHENTICATION (RFC 2617)
=============================================================================

Routes listed under `secrets:` in the settings file are password
protected. A route is the first path segment:

    /private/notes.md   → route "private"
    /                   → route ""   (never secret)

=============================================================================
THE EXCHANGE
=============================================================================

    Client                                         Server
      │  GET /private/notes                          │
      │─────────────────────────────────────────────►│
      │                                              │  no Authorization
      │  401 Unauthorized                            │
      │  WWW-Authenticate: Digest                    │
      │    realm="example.com-private",              │
      │    qop="auth,auth-int", nonce="1860c5..."    │
      │◄─────────────────────────────────────────────│
      │                                              │
      │  GET /private/notes                          │
      │  Authorization: Digest username="bob",       │
      │    realm=..., nonce=..., nc=00000001,        │
      │    cnonce=..., qop=auth, response="6629..."  │
      │─────────────────────────────────────────────►│
      │                                              │  recompute response
      │  200 OK                                      │
      │◄─────────────────────────────────────────────│

    HA1      = MD5(username ":" realm ":" secret)
    HA2      = MD5(method ":" path)
    response = MD5(HA1 ":" nonce ":" nc ":" cnonce ":" qop ":" HA2)

There is no user database: any username is accepted as long as the
response was computed with the route's secret. Nonces are not tracked,
so every request is checked on its own merits.

=============================================================================
"""

import hashlib
import hmac
import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, Mapping

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, unauthorized


logger = logging.getLogger(__name__)


QOP = "auth,auth-int"

# key=value or key="value, with commas"
_PARAM = re.compile(r'([\w-]+)\s*=\s*(?:"([^"]*)"|([^,\s]*))')


def route_of(path: str) -> str:
    """
    First segment of a request path.

        >>> route_of("/private/notes.md")
        'private'
        >>> route_of("/")
        ''
    """
    return path.lstrip("/").split("/", 1)[0]


def parse_digest_header(value: str) -> Dict[str, str]:
    """
    Parameters of a Digest header value (without the "Digest " prefix).

        >>> parse_digest_header('username="bob", nc=00000001')
        {'username': 'bob', 'nc': '00000001'}
    """
    params = {}
    for match in _PARAM.finditer(value):
        key, quoted, bare = match.groups()
        params[key] = quoted if quoted is not None else bare
    return params


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DigestCredentials:
    """The client's side of the exchange, from the Authorization header."""

    username: str
    realm: str
    nonce: str
    nc: str
    cnonce: str
    qop: str
    response: str

    @classmethod
    def from_header(cls, header: str) -> "DigestCredentials":
        """
        Parse "Digest k=v, ..." into credentials.

        Raises:
            ValueError: If the scheme isn't Digest.
        """
        scheme, _, rest = header.partition(" ")
        if scheme != "Digest" or not rest:
            raise ValueError(f"not a Digest authorization: {scheme!r}")

        params = parse_digest_header(rest)
        return cls(
            username=params.get("username", ""),
            realm=params.get("realm", ""),
            nonce=params.get("nonce", ""),
            nc=params.get("nc", ""),
            cnonce=params.get("cnonce", ""),
            qop=params.get("qop", ""),
            response=params.get("response", ""),
        )

    def expected_response(self, secret: str, method: str, path: str) -> str:
        ha1 = _md5(f"{self.username}:{self.realm}:{secret}")
        ha2 = _md5(f"{method}:{path}")
        return _md5(f"{ha1}:{self.nonce}:{self.nc}:{self.cnonce}:{self.qop}:{ha2}")


class DigestAuth:
    """
    Per-route Digest authentication.

    Args:
        host: Server hostname; realms are "<host>-<route>"
        secrets: route → password
    """

    def __init__(self, host: str, secrets: Mapping[str, str]):
        self.host = host
        self.secrets = secrets

    def realm(self, route: str) -> str:
        return f"{self.host}-{route}"

    def is_secret_route(self, route: str) -> bool:
        return bool(route) and route in self.secrets

    def check(self, request: HTTPRequest, route: str) -> bool:
        """True if the request carries a valid digest for `route`'s secret."""
        try:
            credentials = DigestCredentials.from_header(request.authorization)
        except ValueError:
            return False

        if credentials.realm != self.realm(route):
            return False

        expected = credentials.expected_response(
            self.secrets[route], request.method, request.path
        )
        return hmac.compare_digest(expected, credentials.response)

    def challenge(self, route: str) -> HTTPResponse:
        """A fresh 401 asking for credentials for `route`."""
        nonce = format(time.time_ns(), "x")
        header = f'Digest realm="{self.realm(route)}", qop="{QOP}", nonce="{nonce}"'
        logger.debug(f"Challenge sent for route {route!r}")
        return unauthorized(header)
