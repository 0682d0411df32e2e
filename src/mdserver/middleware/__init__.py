"""
=============================================================================
MIDDLEWARE
=============================================================================

The checks that run in front of the site handler, outermost first:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ LoggingMiddleware      access log line + X-Request-ID               │
    │ TLSMiddleware          303 to HTTPS when enforced, HSTS header      │
    │ DigestAuthMiddleware   401 challenge for secret routes              │
    │ SiteHandler            cache → resolve → render                     │
    └─────────────────────────────────────────────────────────────────────┘

None of these responses are cached; only what SiteHandler produces is.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .tls import TLSMiddleware
from .auth import DigestAuthMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    "LoggingMiddleware",
    "RequestLog",
    "TLSMiddleware",
    "DigestAuthMiddleware",
]
