"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket for the lifetime of one request.

TCP is a byte stream, not a message protocol: a request line may arrive
split across several recv() calls, or glued to the headers. Rather than
buffering by hand, the socket is exposed as a buffered binary file
(socket.makefile("rb")), so the parser can use readline() for the request
line and headers and read(n) for a fixed-length body.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     CONNECTION LIFECYCLE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED             │
    │              │                                     ▲                 │
    │              └── peer sent nothing ────────────────┘                 │
    │                                                                      │
    │   with conn:            ← scoped acquisition                         │
    │       ...               ← any exit path (return, raise)             │
    │   # closed exactly once here                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional, Tuple
import logging
import socket
import time
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket
        address: Peer (ip, port)
        timeout: Socket timeout in seconds (None = block indefinitely)
        id: Short identifier for log lines
        state: Current lifecycle state
    """

    socket: socket.socket
    address: Tuple[str, int]
    timeout: Optional[float] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary reader over the socket (created on first use)."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
            self.state = ConnectionState.READING
        return self._reader

    def send(self, data: bytes) -> bool:
        """
        Write the whole response with sendall().

        Returns:
            True on success, False if the peer is gone
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self):
        """
        Close the connection. Safe to call more than once.

        Sends FIN, discards any request bytes still sitting in the kernel
        buffer (so the peer does not see a reset), then releases the fd.
        """
        if self.state == ConnectionState.CLOSED:
            return

        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.setblocking(False)
            while self.socket.recv(4096):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
