"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings in one dataclass, validated at startup.

    Development:
        ServerConfig(host="127.0.0.1", port=3000, log_level="DEBUG", debug=True)

    Production-ish:
        ServerConfig(port=80, timeout=30.0, max_workers=32, max_body_size=1_048_576)

The defaults reproduce the minimal toolkit behaviour: bind every
interface on 4567, one thread per connection, no timeouts, no size limits.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    NETWORK    host, port, backlog, timeout
    REQUESTS   max_body_size
    WORKERS    max_workers, queue_size
    FILES      public_root
    LOGGING    log_level, log_format
    ERRORS     debug
    """

    host: str = "0.0.0.0"
    """Interface to bind. "127.0.0.1" keeps the server local."""

    port: int = 4567
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Connections the OS queues before refusing new ones."""

    timeout: Optional[float] = None
    """Per-connection socket timeout in seconds. None waits forever."""

    max_body_size: Optional[int] = None
    """Largest accepted Content-Length in bytes. None = unlimited."""

    max_workers: Optional[int] = None
    """None: one thread per connection. N: bounded pool of N workers."""

    queue_size: int = 128
    """Connections allowed to wait for a pool worker (pool only)."""

    public_root: Optional[str] = None
    """Template/file root for Server.render(). Defaults to ./public."""

    log_level: str = "INFO"

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    debug: bool = False
    """Show unexpected failure messages in 500 pages."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        HTTPKIT_HOST, HTTPKIT_PORT, HTTPKIT_PUBLIC_ROOT, HTTPKIT_TIMEOUT,
        HTTPKIT_WORKERS, HTTPKIT_LOG_LEVEL, HTTPKIT_LOG_FORMAT, HTTPKIT_DEBUG

            HTTPKIT_PORT=3000 HTTPKIT_DEBUG=1 python -m httpkit
        """
        timeout = os.getenv("HTTPKIT_TIMEOUT")
        workers = os.getenv("HTTPKIT_WORKERS")
        return cls(
            host=os.getenv("HTTPKIT_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTPKIT_PORT", "4567")),
            public_root=os.getenv("HTTPKIT_PUBLIC_ROOT"),
            timeout=float(timeout) if timeout else None,
            max_workers=int(workers) if workers else None,
            log_level=os.getenv("HTTPKIT_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTPKIT_LOG_FORMAT", "text"),
            debug=os.getenv("HTTPKIT_DEBUG", "").lower() in ("1", "true", "yes", "on"),
        )

    def validate(self) -> None:
        """Fail fast on impossible values."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_body_size is not None and self.max_body_size <= 0:
            raise ValueError("max_body_size must be > 0")

        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
