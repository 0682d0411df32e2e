"""
=============================================================================
RESPONSE OUTCOMES
=============================================================================

An Outcome is the cacheable result of resolving and rendering a path. It
is plain data, so cache entries can be compared, logged and asserted on in
tests, and it knows how to turn itself into a fresh HTTPResponse.

    ┌──────────────────┬──────────────────────────────────────────────────┐
    │ Outcome          │ Response                                         │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │ Literal(path)    │ 200, file read from disk at serve time, ETag     │
    │ Rendered(...)    │ 200, bytes captured when rendered                │
    │ Redirect(...)    │ 301 / 308 with Location                          │
    │ NotFound()       │ 404 "Not Found"                                  │
    │ InternalError(m) │ 500 with m as the body                           │
    └──────────────────┴──────────────────────────────────────────────────┘

Apart from Literal, calling to_response() twice gives byte-identical
bodies, the same status and the same Content-Type.

=============================================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    format_http_date, not_found, internal_error,
)
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Literal:
    """A file served verbatim, streamed from disk on every request."""

    path: str

    def to_response(self, request: HTTPRequest) -> HTTPResponse:
        path = Path(self.path)

        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            # Conditional GET: the client's copy is current
            if request.get_header("If-None-Match") == etag:
                return (ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build())

            content = path.read_bytes()
        except FileNotFoundError:
            logger.info(f"literal file vanished since it was resolved: {self.path}")
            return not_found()
        except OSError as e:
            logger.error(f"Error serving file {self.path}: {e}")
            return internal_error(str(e))

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        builder = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .body(content))

        content_type = get_content_type(path)
        if content_type:
            builder.content_type(content_type)

        return builder.build()


@dataclass(frozen=True)
class Rendered:
    """Bytes produced once by a renderer (Markdown page, pug page)."""

    body: bytes
    content_type: str = "text/html; charset=utf-8"
    source: str = ""

    def to_response(self, request: HTTPRequest) -> HTTPResponse:
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type(self.content_type)
            .body(self.body)
            .build())


@dataclass(frozen=True)
class Redirect:
    """A permanent redirect: trailing-slash fixups and .redirect files."""

    location: str
    status: HTTPStatus = HTTPStatus.MOVED_PERMANENTLY

    def to_response(self, request: HTTPRequest) -> HTTPResponse:
        return ResponseBuilder().redirect(self.location, self.status).build()


@dataclass(frozen=True)
class NotFound:
    """Nothing servable at the requested path."""

    def to_response(self, request: HTTPRequest) -> HTTPResponse:
        return not_found()


@dataclass(frozen=True)
class InternalError:
    """A render or read failure; the message becomes the 500 body."""

    message: str

    def to_response(self, request: HTTPRequest) -> HTTPResponse:
        return internal_error(self.message)


Outcome = Union[Literal, Rendered, Redirect, NotFound, InternalError]
