"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server actually emits, with their reason phrases.

=============================================================================
WHERE EACH CODE COMES FROM
=============================================================================

    ┌──────┬──────────────────────────────────────────────────────────────┐
    │ Code │ Produced by                                                  │
    ├──────┼──────────────────────────────────────────────────────────────┤
    │ 200  │ literal files, rendered Markdown / pug pages                 │
    │ 301  │ directory requested without a trailing slash                 │
    │ 303  │ plain-HTTP request that the TLS policy sends to HTTPS        │
    │ 304  │ literal file whose ETag matches If-None-Match                │
    │ 308  │ `.redirect` file                                             │
    │ 400  │ malformed request line / path traversal                      │
    │ 401  │ Digest challenge on a secret route                           │
    │ 404  │ nothing servable at the requested path                       │
    │ 500  │ render failure (message is the body)                         │
    │ 503  │ thread pool queue full                                       │
    └──────┴──────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301     # directory → directory/
    SEE_OTHER = 303             # http → https
    NOT_MODIFIED = 304          # conditional GET on a literal file
    PERMANENT_REDIRECT = 308    # .redirect files

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 404 Not Found``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_redirect(self) -> bool:
        """True for 3xx codes that carry a Location header."""
        return self in (
            HTTPStatus.MOVED_PERMANENTLY,
            HTTPStatus.SEE_OTHER,
            HTTPStatus.PERMANENT_REDIRECT,
        )


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.SEE_OTHER: "See Other",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.PERMANENT_REDIRECT: "Permanent Redirect",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
