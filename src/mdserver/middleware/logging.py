"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per request on the "mdserver.access" logger, in either of two
formats:

    text (combined-log style):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - - [19/Oct/2026:10:55:36 +0000] "GET /docs/ https"        │
    │   200 1234 5.21ms                                                   │
    └─────────────────────────────────────────────────────────────────────┘

    json (one object per line, for log shippers):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/docs/",       │
    │  "scheme": "https", "status_code": 200, "duration_ms": 5.21, ...}   │
    └─────────────────────────────────────────────────────────────────────┘

Every response gets an X-Request-ID header matching the logged
request_id, so a client report can be tied to its log line.

This middleware must be first in the pipeline so TLS redirects and auth
challenges are logged too.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Configure separately from the module loggers, e.g.
#   logging.getLogger("mdserver.access").addHandler(file_handler)
logger = logging.getLogger("mdserver.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    path: str
    scheme: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def from_exchange(
        cls,
        request_id: str,
        request: HTTPRequest,
        response: HTTPResponse,
        duration_ms: float,
    ) -> "RequestLog":
        return cls(
            request_id=request_id,
            method=request.method,
            path=request.path,
            scheme="https" if request.secure else "http",
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=round(duration_ms, 2),
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.scheme}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with timing and request IDs.

    Args:
        log_format: "text" or "json"
        include_request_id: Add X-Request-ID to every response
        log_level: Level access lines are logged at
        skip_paths: Exact paths that aren't logged (e.g. "/favicon.ico")
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        self.json = log_format == "json"
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.path} raised "
                f"{type(e).__name__}: {e} after {elapsed:.2f}ms"
            )
            raise

        elapsed = (time.perf_counter() - started) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path not in self.skip_paths:
            self._emit(RequestLog.from_exchange(request_id, request, response, elapsed))

        return response

    def _emit(self, entry: RequestLog) -> None:
        if not logger.isEnabledFor(self.log_level):
            return
        line = json.dumps(entry.to_dict()) if self.json else entry.to_text()
        logger.log(self.log_level, line)
