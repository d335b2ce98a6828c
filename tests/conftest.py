"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpkit import Json, Server, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:4567\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Cookie: session=abc123; theme=dark\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"nome": "Pedro", "email": "pedro@example.com"}'
    return (
        b"POST /api/data HTTP/1.1\r\n"
        b"Host: localhost:4567\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes to 127.0.0.1:port and read until the server closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        if raw:
            sock.sendall(raw)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: Server):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.start, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def request(self, raw: bytes) -> bytes:
        return send_raw(self.port, raw)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """Create a test server with a few routes."""
    server = Server(config)

    @server.get("/test")
    def test_route(ctx):
        return {"status": "ok"}

    @server.post("/echo")
    def echo_route(ctx):
        return Json({"received": ctx.body})

    @server.get("/hello/:name")
    def hello(ctx):
        return f"Eae {ctx.params['name'].capitalize()}!"

    @server.get("/boom")
    def boom(ctx):
        raise RuntimeError("kaboom")

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
