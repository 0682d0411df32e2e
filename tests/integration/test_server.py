"""
End-to-end tests against a running server over real sockets.
"""

import socket

import pytest

from mdserver import ConfigError, Server, ServerConfig
from mdserver.config import TLSConfig

from conftest import send_raw


def request_bytes(path: str, method: str = "GET", extra: str = "") -> bytes:
    return (
        f"{method} {path} HTTP/1.1\r\n"
        f"Host: example.com\r\n"
        f"{extra}"
        f"Connection: close\r\n"
        f"\r\n"
    ).encode()


def split_response(raw: bytes):
    head, _, body = raw.partition(b"\r\n\r\n")
    status_line, *header_lines = head.decode().split("\r\n")
    headers = {}
    for line in header_lines:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status_line, headers, body


@pytest.fixture
def port(live_server: Server) -> int:
    return live_server.addresses["http"][1]


class TestServing:

    def test_get_root(self, port):
        status, headers, body = split_response(send_raw(port, request_bytes("/")))

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "text/html; charset=utf-8"
        assert int(headers["content-length"]) == len(body)
        assert headers["server"] == "mdserver/1.0"
        assert b"<h1>Hi</h1>" in body

    def test_head_has_no_body(self, port):
        status, headers, body = split_response(send_raw(port, request_bytes("/", "HEAD")))

        assert status == "HTTP/1.1 200 OK"
        assert int(headers["content-length"]) > 0
        assert body == b""

    def test_not_found(self, port):
        status, _, body = split_response(send_raw(port, request_bytes("/missing")))

        assert status == "HTTP/1.1 404 Not Found"
        assert body == b"Not Found"

    def test_directory_redirect(self, port):
        status, headers, _ = split_response(send_raw(port, request_bytes("/docs")))

        assert status.startswith("HTTP/1.1 301")
        assert headers["location"] == "/docs/"

    def test_digest_challenge(self, port):
        status, headers, _ = split_response(send_raw(port, request_bytes("/private/plan")))

        assert status.startswith("HTTP/1.1 401")
        assert 'realm="example.com-private"' in headers["www-authenticate"]

    def test_request_id_header(self, port):
        _, headers, _ = split_response(send_raw(port, request_bytes("/")))

        assert "x-request-id" in headers


class TestProtocolErrors:

    def test_malformed_request_line(self, port):
        raw = send_raw(port, b"NONSENSE\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 400")

    def test_unsupported_version(self, port):
        raw = send_raw(port, b"GET / HTTP/2.0\r\nHost: x\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 505")

    def test_parent_segments_rejected(self, port):
        raw = send_raw(port, request_bytes("/docs/../../etc/passwd"))

        assert raw.startswith(b"HTTP/1.1 400")


class TestKeepAlive:

    def test_pipelined_requests_share_a_connection(self, port):
        first = b"GET /notes.txt HTTP/1.1\r\nHost: example.com\r\n\r\n"
        second = request_bytes("/docs/")

        raw = send_raw(port, first + second)

        assert raw.count(b"HTTP/1.1 200 OK") == 2
        assert b"just notes" in raw
        assert b"<h1>Docs</h1>" in raw


class TestLifecycle:

    def test_shutdown_stops_accepting(self, make_config):
        server = Server(make_config())
        server.start()
        _, port = server.addresses["http"]

        server.shutdown()

        with pytest.raises(OSError):
            with socket.create_connection(("127.0.0.1", port), timeout=1.0) as s:
                s.sendall(request_bytes("/"))
                if not s.recv(1):
                    raise ConnectionResetError("closed")

    def test_shutdown_is_idempotent(self, make_config):
        server = Server(make_config())
        server.start()

        server.shutdown()
        server.shutdown()

    def test_missing_certificate_fails_start(self, make_config, tmp_path):
        config = make_config(tls=TLSConfig(
            cert=str(tmp_path / "cert.pem"),
            key=str(tmp_path / "key.pem"),
            port=0,
        ))
        server = Server(config)

        with pytest.raises(ConfigError) as exc:
            server.start()

        assert exc.value.exit_code == 7

    def test_invalid_config_rejected_at_construction(self, tmp_path):
        with pytest.raises(ConfigError):
            Server(ServerConfig(root=str(tmp_path / "missing")))
