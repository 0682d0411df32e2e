"""
=============================================================================
CLIENT CONNECTIONS
=============================================================================

Wraps an accepted socket (plain or TLS) with buffered HTTP request
reading, keep-alive timeouts and an orderly close.

=============================================================================
READING A REQUEST
=============================================================================

TCP is a byte stream: one recv() may hold half a request line, or the
tail of one request and the head of the next. Bytes are buffered until
the blank line ending the headers shows up:

    recv() → "GET /docs/ HT"
    recv() → "TP/1.1\\r\\nHost: a\\r\\n\\r\\nGET /b"
                                    ▲
                          end of request 1; "GET /b" stays buffered
                          for the next read_request() on this connection

A Content-Length, if present, is honoured so pipelined requests don't
get mixed up, even though this server never looks at request bodies.

=============================================================================
STATES
=============================================================================

    NEW ──► HANDSHAKE (TLS only) ──► READING ──► PROCESSING ──► WRITING
                 │                      │                          │
                 │                      │                          ▼
                 │                      │                     KEEP_ALIVE ──► READING
                 ▼                      ▼                          │
              CLOSING ◄─────────────────┴──────────────────────────┘
                 │
                 ▼
              CLOSED

=============================================================================
"""

import contextlib
import re
import socket
import ssl
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    HANDSHAKE = "handshake"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The client socket (an ssl.SSLSocket on the HTTPS listener)
        address: Client's (ip, port)
        secure: True when accepted on the HTTPS listener; copied into
                every HTTPRequest read from this connection
        id: Short identifier for log lines
        requests_handled: Requests read so far (keep-alive)
    """

    socket: socket.socket
    address: tuple[str, int]
    secure: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def handshake(self) -> bool:
        """
        Complete the TLS handshake on the worker thread.

        No-op for plain connections. Returns False (after logging) when the
        client fails the handshake; the caller should just close.
        """
        if not isinstance(self.socket, ssl.SSLSocket):
            return True

        self.state = ConnectionState.HANDSHAKE
        try:
            self.socket.do_handshake()
            return True
        except (ssl.SSLError, socket.timeout, OSError) as e:
            logger.debug(f"[{self.id}] TLS handshake with {self.client_ip} failed: {e}")
            return False

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The request bytes, or None if the client closed the connection
            (or went quiet between keep-alive requests).

        Raises:
            TimeoutError: The first request didn't arrive in time.
            ValueError: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        idle = self.requests_handled > 0
        self.socket.settimeout(self.keep_alive_timeout if idle else self.timeout)

        try:
            header_end = self._fill_until_headers()
            if header_end is None:
                return None

            request_end = header_end + 4 + _content_length(self._buffer[:header_end])
            if request_end > self.max_request_size:
                raise ValueError(f"Request too large: {request_end} bytes")

            # A short body is left for the parser to reject
            while len(self._buffer) < request_end and self._fill():
                pass

        except socket.timeout:
            if idle:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")
        finally:
            self.socket.settimeout(self.timeout)

        request = bytes(self._buffer[:request_end])
        del self._buffer[:request_end]

        self.requests_handled += 1
        self.state = ConnectionState.PROCESSING
        return request

    def _fill_until_headers(self) -> Optional[int]:
        """Buffer until the blank line; its offset, or None on EOF."""
        while True:
            end = self._buffer.find(b"\r\n\r\n")
            if end != -1:
                return end
            if len(self._buffer) > self.max_request_size:
                raise ValueError(f"Request too large: {len(self._buffer)} bytes")
            if not self._fill():
                return None

    def _fill(self) -> bool:
        """One recv() into the buffer. False once the peer is gone."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError, ssl.SSLError):
            return False
        self.last_activity = time.time()
        self._buffer += chunk
        return bool(chunk)

    def send_response(self, data: bytes) -> bool:
        """sendall() the response. False if the client has gone away."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send to {self.client_ip} failed: {e}")
            return False
        self.last_activity = time.time()
        return True

    def close(self) -> None:
        """Half-close, drain what the client still sends, then close."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        with contextlib.suppress(OSError):
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass

        with contextlib.suppress(OSError):
            self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} request(s)")

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*$", re.IGNORECASE | re.MULTILINE)


def _content_length(head: bytes) -> int:
    """Content-Length from raw header bytes; 0 when absent or garbled."""
    match = _CONTENT_LENGTH.search(head.replace(b"\r\n", b"\n"))
    return int(match.group(1)) if match else 0
