"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone

from mdserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    ok,
    see_other,
    not_found,
    bad_request,
    unauthorized,
    internal_error,
    error_response,
    redirect,
    format_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.PERMANENT_REDIRECT)
        assert response.status_line == "HTTP/1.1 308 Permanent Redirect"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert b"HTTP/1.1 200 OK\r\n" in result
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: mdserver/1.0\r\n" in result
        assert b"\r\n\r\ntest" in result

    def test_to_bytes_sets_content_length(self):
        """Test that Content-Length is auto-set."""
        response = HTTPResponse(body=b"hello world")
        result = response.to_bytes()

        assert b"Content-Length: 11\r\n" in result

    def test_head_omits_body_but_keeps_length(self):
        """HEAD responses carry the real Content-Length and no body."""
        response = HTTPResponse(body=b"hello world")
        result = response.to_bytes(include_body=False)

        assert b"Content-Length: 11\r\n" in result
        assert result.endswith(b"\r\n\r\n")

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).build()
        assert response.status == HTTPStatus.NOT_MODIFIED

    def test_html_body(self):
        """Test HTML body."""
        html = "<html><body>Hello</body></html>"
        response = ResponseBuilder().html(html).build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == html.encode()

    def test_text_body(self):
        """Test plain text body."""
        text = "Hello, World!"
        response = ResponseBuilder().text(text).build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == text.encode()

    def test_redirect_defaults_to_301(self):
        """Test redirect response."""
        response = ResponseBuilder().redirect("/docs/").build()

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/docs/"

    def test_redirect_with_status(self):
        """Test permanent redirect that keeps the method."""
        response = ResponseBuilder().redirect("/new", HTTPStatus.PERMANENT_REDIRECT).build()

        assert response.status == HTTPStatus.PERMANENT_REDIRECT

    def test_cache_headers(self):
        """Test cache header setting."""
        response = ResponseBuilder().cache(max_age=3600).build()
        assert response.headers["Cache-Control"] == "public, max-age=3600"

    def test_close_connection(self):
        """Test connection close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_builds_are_independent(self):
        """Headers of one build() don't leak into the next."""
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.set_header("X-B", "2")

        assert "X-B" not in builder.build().headers


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_ok(self):
        """Test ok() function."""
        response = ok("Hello", "text/plain")
        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello"
        assert response.headers["Content-Type"] == "text/plain"

    def test_redirect(self):
        """Test redirect() function."""
        response = redirect("/docs/")
        assert response.status == HTTPStatus.MOVED_PERMANENTLY

    def test_see_other(self):
        """Test see_other() function."""
        response = see_other("https://example.com/")
        assert response.status == HTTPStatus.SEE_OTHER
        assert response.headers["Location"] == "https://example.com/"

    def test_unauthorized(self):
        """Test unauthorized() function."""
        response = unauthorized('Digest realm="r"')
        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == 'Digest realm="r"'

    def test_not_found(self):
        """Test not_found() function."""
        response = not_found()
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"Not Found"

    def test_bad_request(self):
        """Test bad_request() function."""
        response = bad_request("Invalid input")
        assert response.status == HTTPStatus.BAD_REQUEST
        assert b"Invalid input" in response.body

    def test_internal_error(self):
        """Test internal_error() function."""
        response = internal_error("template error")
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b"template error"

    def test_error_response_closes(self):
        """Test error_response() function."""
        response = error_response(HTTPStatus.REQUEST_TIMEOUT, "Request Timeout")
        assert response.status == HTTPStatus.REQUEST_TIMEOUT
        assert response.headers["Connection"] == "close"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that all statuses have phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_redirect_category(self):
        """Test status category helper."""
        assert HTTPStatus.SEE_OTHER.is_redirect
        assert HTTPStatus.PERMANENT_REDIRECT.is_redirect
        assert not HTTPStatus.OK.is_redirect


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test HTTP date format."""
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
