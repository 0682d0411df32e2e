"""
Access policy: Digest authentication for secret routes and HTTPS
enforcement.
"""

from .digest import DigestAuth, DigestCredentials, parse_digest_header, route_of
from .tls_policy import HSTS_HEADER, HSTS_VALUE, requires_redirect, upgrade_location

__all__ = [
    "DigestAuth",
    "DigestCredentials",
    "parse_digest_header",
    "route_of",

    "HSTS_HEADER",
    "HSTS_VALUE",
    "requires_redirect",
    "upgrade_location",
]
