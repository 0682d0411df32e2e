"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read off a connection into an HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /private/notes HTTP/1.1\r\n          ← request line            │
    │   Host: example.com\r\n                    ← headers                 │
    │   Authorization: Digest username="x",...\r\n                         │
    │   \r\n                                     ← end of headers          │
    │   [body]                                   ← Content-Length bytes    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server only ever reads the path, a handful of headers (Host,
Authorization, If-None-Match, Connection) and whether the connection was
TLS. Bodies are parsed for framing only, so keep-alive stays in sync.

=============================================================================
SECURITY
=============================================================================

1. Size limit: anything above max_request_size is a 413.
2. Path traversal: a ".." path segment is a 400 before it ever reaches the
   resolver, so "/../../etc/passwd" can't escape the serving root.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to answer with:
        400 Bad Request              - malformed syntax, traversal attempt
        405 Method Not Allowed       - unknown method
        413 Payload Too Large        - request exceeds size limit
        505 HTTP Version Not Supported
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         HTTP method ("GET", "HEAD", ...)
        path:           URL-decoded path without the query string. This is
                        the cache key and the input to path resolution.
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with lowercase names
        query_params:   Parsed query string (unused by resolution)
        body:           Raw body bytes
        client_address: (ip, port) of the peer
        secure:         True when the request arrived on the TLS listener
        raw:            The original unparsed bytes
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)
    secure: bool = False
    raw: bytes = field(default=b"", repr=False)

    @property
    def host(self) -> str:
        """The Host header value."""
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        """The User-Agent header value."""
        return self.headers.get("user-agent", "")

    @property
    def authorization(self) -> str:
        """The raw Authorization header, or an empty string."""
        return self.headers.get("authorization", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after this response.

        HTTP/1.1 keeps alive unless "Connection: close";
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw bytes
            │
            ├── 1. size check                       (413)
            ├── 2. split at \\r\\n\\r\\n             (400 if missing)
            ├── 3. request line  METHOD SP URI SP VERSION
            │                                       (400 / 405 / 505)
            ├── 4. headers, lowercased names
            ├── 5. body sliced to Content-Length
            ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET",
        "HEAD",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "OPTIONS",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
        secure: bool = False,
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the connection.
            client_address: Peer (ip, port), kept for access logging.
            secure: Whether the bytes came over TLS.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
            secure=secure,
            raw=data,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            Tuple of (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid path: {path}")

        # "/a/../../etc" must never reach the filesystem join
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Continuation lines (leading whitespace) extend the previous header;
        repeated headers are joined with ", " per RFC 7230.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
    secure: bool = False,
) -> HTTPRequest:
    """One-shot helper around RequestParser."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address, secure=secure)
