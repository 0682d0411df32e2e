"""
=============================================================================
SERVER
=============================================================================

Wires the pieces together and owns the process lifecycle.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer "http"  :80  ──┐                                      │
    │   SocketServer "https" :443 ──┼──► ThreadPool ──► _process_connection│
    │                               │                        │             │
    │     (one accept-loop thread   │          handshake (TLS) / read /    │
    │      per listener)            │          parse / respond, keep-alive │
    │                                                        │             │
    │                                                        ▼             │
    │   LoggingMiddleware ─► TLSMiddleware ─► DigestAuthMiddleware         │
    │                                                        │             │
    │                                                        ▼             │
    │                    SiteHandler: ResponseCache ─ PathResolver ─       │
    │                                 ContentRenderer                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SIGNALS (main thread only)
=============================================================================

    SIGINT, SIGTERM   graceful shutdown: stop accepting, finish in-flight
                      requests, stop the cache janitor
    SIGUSR1           flush the response cache

=============================================================================
"""

import logging
import signal
import ssl
import threading
from typing import Dict, List, Tuple

from .config import ConfigError, ServerConfig
from .content import ContentRenderer, PathResolver, ResponseCache, SiteHandler
from .core import Connection, SocketServer, ThreadPool
from .http import (
    HTTPParseError, HTTPRequest, HTTPResponse, HTTPStatus, RequestParser,
    error_response, internal_error,
)
from .middleware import (
    DigestAuthMiddleware, LoggingMiddleware, MiddlewarePipeline, TLSMiddleware,
)
from .security import DigestAuth


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class Server:
    """
    The Markdown site server.

    Usage:
        server = Server(load_settings("settings.yaml"))
        server.run()              # blocks until SIGINT/SIGTERM

    Tests drive it without signals or blocking:
        server.start()
        host, port = server.addresses["http"]
        ...
        server.shutdown()
    """

    def __init__(self, config: ServerConfig):
        config.validate()
        self.config = config

        self.cache = ResponseCache(config.ttl, config.sweep_interval)
        self.auth = DigestAuth(config.host, config.secrets)
        self.site = SiteHandler(
            resolver=PathResolver(config.root),
            renderer=ContentRenderer(config.template),
            cache=self.cache,
        )

        self._pipeline = MiddlewarePipeline().use(
            LoggingMiddleware(log_format=config.log_format),
            TLSMiddleware(config),
            DigestAuthMiddleware(self.auth),
        )
        self._handler = self._pipeline.wrap(self.site)

        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._thread_pool = ThreadPool(
            min_workers=config.min_workers,
            max_workers=config.max_workers,
        )

        self._listeners: List[SocketServer] = []
        self._threads: List[threading.Thread] = []
        self._original_handlers: dict = {}
        self._running = False
        self._stop_requested = threading.Event()

    # =========================================================================
    # REQUEST ENTRY POINT
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one parsed request through the full pipeline.

        Never raises: a bug anywhere below becomes a logged 500.
        """
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return internal_error("Internal Server Error")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def addresses(self) -> Dict[str, Tuple[str, int]]:
        """Listener name → bound (ip, port)."""
        return {listener.name: listener.address for listener in self._listeners}

    def run(self) -> None:
        """Start everything, then block until a shutdown signal."""
        self._setup_logging()
        self.start()
        self._install_signals()
        self._print_startup_banner()

        try:
            while not self._stop_requested.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._restore_signals()
            self.shutdown()

    def start(self) -> None:
        """
        Bind every listener and start serving in background threads.

        Raises:
            ConfigError: The TLS certificate or key can't be loaded.
            OSError: A listener can't bind.
        """
        if self._running:
            return

        self._listeners = self._create_listeners()
        try:
            for listener in self._listeners:
                listener.bind()
        except OSError:
            for listener in self._listeners:
                listener.close()
            raise

        self._thread_pool.start()
        self.cache.start()
        self._running = True
        self._stop_requested.clear()

        for listener in self._listeners:
            thread = threading.Thread(
                target=listener.serve,
                args=(self._handle_connection,),
                name=f"{listener.name}-accept",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def request_shutdown(self) -> None:
        """Ask run() to return. Safe from signal handlers."""
        self._stop_requested.set()

    def shutdown(self) -> None:
        """Stop accepting, drain the pool, stop the cache janitor."""
        if not self._running:
            return

        logger.info("Shutting down server...")
        self._running = False

        for listener in self._listeners:
            listener.shutdown()
        for thread in self._threads:
            thread.join(timeout=5.0)
        self._threads.clear()

        self._thread_pool.shutdown(wait=True, timeout=30.0)
        self.cache.stop()
        logger.info("Server stopped")

    def _create_listeners(self) -> List[SocketServer]:
        listeners = []

        if self.config.port is not None:
            listeners.append(SocketServer("http", self.config, self.config.port))

        if self.config.tls is not None:
            listeners.append(SocketServer(
                "https",
                self.config,
                self.config.tls.port,
                ssl_context=self._create_ssl_context(),
            ))

        return listeners

    def _create_ssl_context(self) -> ssl.SSLContext:
        tls = self.config.tls
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        try:
            context.load_cert_chain(certfile=tls.cert, keyfile=tls.key)
        except (OSError, ssl.SSLError) as e:
            raise ConfigError(f"couldn't load TLS certificate {tls.cert}: {e}", exit_code=7)
        return context

    # =========================================================================
    # LOGGING AND SIGNALS
    # =========================================================================

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format=LOG_FORMAT,
            datefmt=LOG_DATEFMT,
            filename=self.config.log_file,
        )
        logging.getLogger("mdserver").setLevel(level)

    def _install_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.request_shutdown()

        def flush_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, flushing cache")
            self.cache.request_flush()

        handlers = {
            signal.SIGINT: shutdown_handler,
            signal.SIGTERM: shutdown_handler,
            signal.SIGUSR1: flush_handler,
        }
        for signum, handler in handlers.items():
            self._original_handlers[signum] = signal.signal(signum, handler)

    def _restore_signals(self) -> None:
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    def _print_startup_banner(self) -> None:
        print()
        print(f"  {self.config.server_name} serving {self.config.root}")
        for name, (host, port) in self.addresses.items():
            print(f"  {name}://{host}:{port}")
        cache = "off" if self.config.ttl is None else (
            "never expires" if self.config.ttl < 0 else f"{int(self.config.ttl)}s"
        )
        print(f"  cache: {cache}   workers: {self.config.min_workers}-{self.config.max_workers}")
        print()

    # =========================================================================
    # CONNECTION HANDLING (worker threads)
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Called on an accept-loop thread: hand the connection to the pool."""
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                block=False,
            )
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            if not conn.secure:
                self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection) -> None:
        """Keep-alive loop for one connection."""
        with conn:
            if not conn.handshake():
                return

            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request Timeout")
                    break
                except ValueError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address, secure=conn.secure)
                except HTTPParseError as e:
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                response = self.handle(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive",
                        f"timeout={int(self.config.keep_alive_timeout)}",
                    )
                else:
                    response.headers["Connection"] = "close"

                response_bytes = response.to_bytes(
                    self.config.server_name,
                    include_body=request.method != "HEAD",
                )

                if not conn.send_response(response_bytes):
                    break

                if not keep_alive or response.headers.get("Connection") == "close":
                    break

                conn.set_keep_alive()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str) -> None:
        """Errors raised before a request made it into the pipeline."""
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))
