"""
=============================================================================
MDSERVER
=============================================================================

A static site server that renders Markdown and pug pages on the fly.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ GET /docs/intro                                                      │
    │                                                                      │
    │   site/docs/intro         served as-is if it exists                 │
    │   site/docs/intro.md      else rendered into the page template      │
    │   site/docs/intro.pug     (first "intro.*" in name order wins)      │
    │   site/docs/intro/        else 301 → /docs/intro/, then index.*     │
    └─────────────────────────────────────────────────────────────────────┘

Extras:
- Digest-authenticated routes (first path segment → password)
- Optional HTTPS listener with HSTS and HTTP → HTTPS redirects
- Response cache with TTL, flushed on SIGUSR1
- `.redirect` files holding a URL for a 308

Layout:

    config.py       YAML settings → ServerConfig
    server.py       listeners, thread pool, signals, middleware pipeline
    content/        resolution, rendering, caching
    security/       Digest auth, TLS enforcement policy
    middleware/     access log, TLS redirect + HSTS, auth gate
    http/           request parser, response builder
    core/           sockets, connections, worker threads

=============================================================================
"""

__version__ = "1.0.0"

from .server import Server
from .config import ServerConfig, ConfigError, load_settings

__all__ = ["Server", "ServerConfig", "ConfigError", "load_settings", "__version__"]
