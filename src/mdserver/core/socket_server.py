"""
=============================================================================
TCP LISTENER
=============================================================================

One SocketServer per listener: the plain HTTP port and, when TLS is
configured, the HTTPS port. Both hand their connections to the same
callback (and so the same thread pool and response cache).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bind()      socket() → setsockopt() → bind() → listen()           │
    │                                                                      │
    │   serve(cb)   while running:                                         │
    │                   accept()            1s timeout, then re-check      │
    │                   Connection(...)     secure=True on the TLS port    │
    │                   cb(conn)            → thread pool                  │
    │                                                                      │
    │   shutdown()  running = False; the loop exits within a second        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

On the HTTPS listener the accepted socket is wrapped with the server's
SSLContext but the handshake is deferred (do_handshake_on_connect=False)
and done by the worker in Connection.handshake(). A slow or hostile
client therefore can't stall the accept loop.

Signal handling lives in Server, which owns the main thread.

=============================================================================
"""

import socket
import ssl
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    A single listening socket and its accept loop.

    Usage:
        listener = SocketServer("http", config, port=8080)
        listener.bind()                       # errors surface here
        listener.serve(handle_connection)     # blocks until shutdown()
    """

    def __init__(
        self,
        name: str,
        config: ServerConfig,
        port: int,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.name = name
        self.config = config
        self.port = port
        self.ssl_context = ssl_context

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()

    @property
    def secure(self) -> bool:
        return self.ssl_context is not None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (ip, port); the real port once bound, even when 0 was asked for."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.bind, self.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Disable Nagle: responses go out as soon as they're written
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to notice shutdown()
        sock.settimeout(1.0)

        return sock

    def bind(self) -> None:
        """
        Create, bind and listen.

        Raises:
            OSError: Address in use, permission denied (ports < 1024), ...
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.bind, self.port))
        except OSError as e:
            logger.error(f"Failed to bind {self.name} listener to {self.config.bind}:{self.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._running = True
        self._shutdown_event.clear()

        host, port = self.address
        logger.info(f"Starting {self.name.upper()} server on {host}:{port}")

    def serve(self, connection_handler: Callable[[Connection], None]) -> None:
        """Accept connections until shutdown(). Binds first if needed."""
        if self._socket is None:
            self.bind()

        try:
            self._accept_loop(connection_handler)
        finally:
            self.close()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error on {self.name} listener: {e}")
                break

            logger.debug(f"Accepted {self.name} connection from {client_address[0]}:{client_address[1]}")

            if self.ssl_context is not None:
                try:
                    client_socket = self.ssl_context.wrap_socket(
                        client_socket,
                        server_side=True,
                        do_handshake_on_connect=False,
                    )
                except (ssl.SSLError, OSError) as e:
                    logger.warning(f"TLS setup failed for {client_address[0]}: {e}")
                    client_socket.close()
                    continue

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
                secure=self.secure,
            )

            connection_handler(conn)

    def shutdown(self) -> None:
        """Stop accepting. Safe to call more than once, from any thread."""
        self._running = False
        self._shutdown_event.set()

    def close(self) -> None:
        """Close the listening socket."""
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info(f"{self.name.upper()} listener stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._shutdown_event.wait(timeout)
