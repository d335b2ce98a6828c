"""
=============================================================================
SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket() + SO_REUSEADDR + timeout    │
    │        ├──► bind() / listen()                                        │
    │        ├──► _setup_signals()   SIGINT/SIGTERM → shutdown()          │
    │        │                        (main thread only)                   │
    │        └──► _accept_loop()     blocks here                           │
    │                 └──► while running:                                  │
    │                         accept()          wait for a client          │
    │                         Connection(...)   wrap the client socket     │
    │                         handler(conn)     hand off, never wait       │
    │                                                                      │
    │    shutdown()    flips the running flag; the loop notices within    │
    │                  one accept timeout (1s)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The accept loop is single-threaded and never processes a request: the
handler callback submits the connection to a worker policy and returns.
An error in one connection's handling can never reach this loop.

=============================================================================
"""

from typing import Callable, Optional, Tuple
import logging
import signal
import socket
import threading

from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    TCP listener handing every accepted connection to a callback.

    Args:
        host: Interface to bind ("0.0.0.0" = all)
        port: Port to bind (0 = let the OS pick)
        backlog: Listen queue length
        timeout: Per-connection socket timeout (None = no timeout)

    Usage:
        server = SocketServer("127.0.0.1", 8080)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 4567,
        backlog: int = 128,
        timeout: Optional[float] = None,
    ):
        self.host = host
        self.port = port
        self.backlog = backlog
        self.timeout = timeout

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening when port=0."""
        return (self.host, self.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Allow an immediate restart while old sockets sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up periodically so shutdown() is noticed
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """Route SIGINT/SIGTERM to shutdown(). Only possible on the main thread."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop. Blocks until shutdown().

        Raises:
            OSError: If the address cannot be bound
        """
        self._socket = self._create_socket()
        self._stopped.clear()

        try:
            self._socket.bind((self.host, self.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.host}:{self.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.backlog)
        self.host, self.port = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._ready.set()
        logger.info(f"Listening on {self.host}:{self.port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.timeout,
            )
            logger.debug(f"[{conn.id}] Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Could not dispatch connection: {e}")
                conn.close()

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        self._stopped.set()
        logger.info("Socket server stopped")
