"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about HTTP/1.1 message syntax and nothing about the
site being served.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest (path, headers, secure)    │
    │ response.py      HTTPResponse / ResponseBuilder → raw bytes         │
    │ status_codes.py  HTTPStatus enum with reason phrases                │
    │ mime_types.py    file extension → Content-Type                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                 # 200
    redirect,           # 301 / 308
    see_other,          # 303
    bad_request,        # 400
    unauthorized,       # 401
    not_found,          # 404
    internal_error,     # 500
    error_response,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "redirect",
    "see_other",
    "bad_request",
    "unauthorized",
    "not_found",
    "internal_error",
    "error_response",

    "HTTPStatus",

    "get_mime_type",
    "get_content_type",
]
