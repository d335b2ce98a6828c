"""
=============================================================================
REQUEST LOGGING
=============================================================================

Two pieces:

- AccessLog: one structured record per answered request, emitted by the
  pipeline after the response is written (it is the only place that
  knows the final status and size).
- request_logger(): a global middleware that logs each request as it
  arrives, before routing. Install it with server.use(request_logger()).

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default, Apache-like):
    127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /hello/World" 200 10 0.42ms

    JSON (for log aggregators):
    {"request_id": "a1b2c3d4", "method": "GET", "path": "/hello/World", ...}

Both go to the "httpkit.access" logger so they can be routed or silenced
independently of the server's own logs:

    logging.getLogger("httpkit.access").setLevel(logging.WARNING)

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional
import json
import logging
import time


logger = logging.getLogger("httpkit.access")


@dataclass
class RequestLog:
    """Structured access-log entry for one request."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLog:
    """
    Emits RequestLog entries on the httpkit.access logger.

    Args:
        log_format: "text" or "json"
        log_level: Level used for every entry
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def build(self, request: Any, status: int, content_length: int, started: float) -> RequestLog:
        """Build an entry; started is a time.monotonic() reading."""
        query = "&".join(f"{key}={value}" for key, value in request.query.items())
        return RequestLog(
            request_id=request.id,
            method=request.method,
            path=request.path,
            query=query,
            client_ip=request.client_ip,
            user_agent=request.user_agent or "-",
            status_code=status,
            content_length=content_length,
            duration_ms=(time.monotonic() - started) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def record(self, request: Any, status: int, content_length: int, started: float) -> Optional[RequestLog]:
        """Log one request. Returns the entry, or None if the level is disabled."""
        if not logger.isEnabledFor(self.log_level):
            return None

        entry = self.build(request, status, content_length, started)
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict(), ensure_ascii=False))
        else:
            logger.log(self.log_level, entry.to_text())
        return entry


def request_logger(log_level: int = logging.INFO) -> Callable[[Any], None]:
    """
    Global middleware that logs "[timestamp] METHOD path" plus user agent.

    Never short-circuits.

        server.use(request_logger())
    """
    def log_request(ctx: Any) -> None:
        logger.log(
            log_level,
            f"[{time.strftime('%Y-%m-%d %H:%M:%S')}] {ctx.method} {ctx.path} "
            f"({ctx.user_agent or '-'})",
        )

    return log_request
