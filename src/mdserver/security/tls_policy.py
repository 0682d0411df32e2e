"""
=============================================================================
TLS ENFORCEMENT POLICY
=============================================================================

Whether a request that arrived over plain HTTP has to be sent to the
HTTPS listener first.

    ┌────────────┬──────────────────────┬───────────────────────────────┐
    │ level      │ secret route         │ public route                  │
    ├────────────┼──────────────────────┼───────────────────────────────┤
    │ NONE       │ served               │ served                        │
    │ SECRETS    │ 303 → https          │ served                        │
    │ ALL        │ 303 → https          │ 303 → https                   │
    └────────────┴──────────────────────┴───────────────────────────────┘

Requests that are already secure are never redirected.

Whenever the HTTPS listener exists, every response (plain or secure)
carries Strict-Transport-Security so browsers stick to HTTPS.

=============================================================================
"""

from urllib.parse import quote

from ..config import EnforcementLevel


HSTS_HEADER = "Strict-Transport-Security"
HSTS_VALUE = "max-age=63072000"


def requires_redirect(
    is_secure: bool,
    level: EnforcementLevel,
    route_is_secret: bool,
) -> bool:
    if is_secure:
        return False
    if level is EnforcementLevel.ALL:
        return True
    if level is EnforcementLevel.SECRETS:
        return route_is_secret
    return False


def upgrade_location(host: str, tls_port: int, path: str) -> str:
    """
    The HTTPS URL for `path`.

        >>> upgrade_location("example.com", 443, "/private/")
        'https://example.com/private/'
        >>> upgrade_location("example.com", 8443, "/a")
        'https://example.com:8443/a'
        >>> upgrade_location("example.com", 443, "/my notes/")
        'https://example.com/my%20notes/'
    """
    path = quote(path, safe="/")
    if tls_port == 443:
        return f"https://{host}{path}"
    return f"https://{host}:{tls_port}{path}"
