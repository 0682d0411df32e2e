"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 401 Unauthorized\\r\\n            ← status line            │
    │   WWW-Authenticate: Digest realm=...\\r\\n  ← headers                │
    │   Strict-Transport-Security: ...\\r\\n                               │
    │   Content-Length: 12\\r\\n                  ← added by to_bytes()    │
    │   Date: Mon, 19 Oct 2026 10:00:00 GMT\\r\\n ← added by to_bytes()    │
    │   Server: mdserver/1.0\\r\\n                ← added by to_bytes()    │
    │   \\r\\n                                                             │
    │   Unauthorized                            ← body                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

HTTPResponse objects are built fresh for every request, even when the
outcome that produced them came out of the response cache, so middleware
can add headers (HSTS, X-Request-ID) without touching cached state.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Use ResponseBuilder (or the helpers at the bottom of this module)
    rather than constructing this directly.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        """Set the Content-Type header."""
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body, encoding strings as UTF-8."""
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = body
        return self

    def to_bytes(
        self,
        server_name: str = "mdserver/1.0",
        include_body: bool = True,
    ) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are added when missing. A HEAD
        request passes include_body=False: headers (including the real
        Content-Length) are sent, the body is not.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        if not include_body:
            return header_bytes
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.UNAUTHORIZED)
            .header("WWW-Authenticate", challenge)
            .text("Unauthorized")
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        """Add multiple headers at once."""
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body; strings are UTF-8 encoded."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        """Plain text body."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        """HTML body with a UTF-8 Content-Type."""
        self.body(html)
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    def redirect(
        self,
        location: str,
        status: HTTPStatus = HTTPStatus.MOVED_PERMANENTLY,
    ) -> "ResponseBuilder":
        """
        Redirect to `location`.

        =====================================================================
        REDIRECT CODES USED BY THIS SERVER
        =====================================================================

        301 Moved Permanently   /docs → /docs/
        303 See Other           http://host/x → https://host/x
        308 Permanent Redirect  target of a .redirect file (keeps method)

        =====================================================================
        """
        self._status = status
        self._headers["Location"] = location
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        """Cache-Control: public, max-age=N."""
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Connection: close."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        """Build the HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always GMT.

        Wed, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK with an optional Content-Type."""
    builder = ResponseBuilder().status(HTTPStatus.OK).body(body)
    if content_type:
        builder.content_type(content_type)
    return builder.build()


def redirect(location: str, status: HTTPStatus = HTTPStatus.MOVED_PERMANENTLY) -> HTTPResponse:
    """Redirect response (301 by default)."""
    return ResponseBuilder().redirect(location, status).build()


def see_other(location: str) -> HTTPResponse:
    """303 See Other, used for the plain-HTTP → HTTPS upgrade."""
    return redirect(location, HTTPStatus.SEE_OTHER)


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """400 Bad Request."""
    return (ResponseBuilder()
        .status(HTTPStatus.BAD_REQUEST)
        .text(message)
        .build())


def unauthorized(challenge: str, message: str = "Unauthorized") -> HTTPResponse:
    """401 with the given WWW-Authenticate challenge."""
    return (ResponseBuilder()
        .status(HTTPStatus.UNAUTHORIZED)
        .header("WWW-Authenticate", challenge)
        .text(message)
        .build())


def not_found(message: str = "Not Found") -> HTTPResponse:
    """404 Not Found."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .text(message)
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with `message` as the plain-text body."""
    return (ResponseBuilder()
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .text(message)
        .build())


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Plain-text error for failures before the pipeline runs."""
    return (ResponseBuilder()
        .status(status)
        .text(message)
        .close_connection()
        .build())
