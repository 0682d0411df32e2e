"""
pytest configuration and fixtures.
"""

import hashlib
import socket
import time
from pathlib import Path
from typing import Callable, Dict, Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mdserver import Server, ServerConfig
from mdserver.config import DEFAULT_TEMPLATE, EnforcementLevel, TLSConfig
from mdserver.http import HTTPRequest


# =============================================================================
# SITE TREES
# =============================================================================

SITE_FILES: Dict[str, str] = {
    "index.md": "# Hi\n",
    "about.html": "<p>about page</p>",
    "about/team.md": "# Team\n",
    "guide.md": "# Guide\n\n~~old~~ new\n",
    "guide.txt": "plain guide",
    "report.2024.md": "# Report\n",
    "notes.txt": "just notes",
    "docs/index.md": "# Docs\n",
    "docs/setup.md": "# Setup\n",
    "empty/placeholder": "",
    "private/index.md": "# Secret\n",
    "private/plan.md": "# Plan\n",
    "home.redirect": "  https://example.com/new-home  \n",
    "blank.redirect": "   \n",
    "page.pug": "p Hello from pug\n",
}


def build_site(root: Path, files: Dict[str, str]) -> Path:
    """Write `files` (relative path → text) under `root`."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A small site tree covering every resolution step."""
    return build_site(tmp_path / "site", SITE_FILES)


@pytest.fixture
def make_config(site: Path) -> Callable[..., ServerConfig]:
    """ServerConfig factory rooted at the `site` fixture."""

    def factory(**overrides) -> ServerConfig:
        values = dict(
            root=str(site),
            host="example.com",
            template=DEFAULT_TEMPLATE,
            secrets={"private": "hunter2"},
            bind="127.0.0.1",
            port=0,
            min_workers=2,
            max_workers=4,
            timeout=5.0,
            log_level="WARNING",
        )
        values.update(overrides)
        return ServerConfig(**values)

    return factory


def tls_config(level: EnforcementLevel, port: int = 443) -> TLSConfig:
    """TLS settings for pipeline tests; the certificate is never loaded."""
    return TLSConfig(cert="cert.pem", key="key.pem", port=port, level=level)


# =============================================================================
# REQUESTS
# =============================================================================

def make_request(
    path: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    secure: bool = False,
) -> HTTPRequest:
    """An already-parsed request, as the pipeline receives it."""
    return HTTPRequest(
        method=method,
        path=path,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        client_address=("127.0.0.1", 50000),
        secure=secure,
    )


def digest_authorization(
    path: str,
    realm: str,
    secret: str,
    method: str = "GET",
    username: str = "anyone",
    nonce: str = "abc123",
    nc: str = "00000001",
    cnonce: str = "0a4f113b",
    qop: str = "auth",
) -> str:
    """A correct RFC 2617 Authorization header value for `secret`."""

    def md5(text: str) -> str:
        return hashlib.md5(text.encode()).hexdigest()

    ha1 = md5(f"{username}:{realm}:{secret}")
    ha2 = md5(f"{method}:{path}")
    response = md5(f"{ha1}:{nonce}:{nc}:{cnonce}:{qop}:{ha2}")
    return (
        f'Digest username="{username}", realm="{realm}", nonce="{nonce}", '
        f'uri="{path}", qop={qop}, nc={nc}, cnonce="{cnonce}", '
        f'response="{response}"'
    )


class FakeClock:
    """Manually advanced time source for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# LIVE SERVER
# =============================================================================

@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def live_server(make_config) -> Generator[Server, None, None]:
    """A started server on an OS-chosen port, caching enabled."""
    server = Server(make_config(ttl=300.0))
    server.start()

    # Wait until the accept loop answers
    _, port = server.addresses["http"]
    for _ in range(50):
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=0.5):
                break
        except OSError:
            time.sleep(0.1)

    yield server

    server.shutdown()
