"""
=============================================================================
HTTPKIT - Minimal HTTP Server Toolkit on Raw Sockets
=============================================================================

Accepts TCP connections, parses HTTP/1.1 by hand, matches routes with
":name" parameters, runs global and per-route middlewares, answers with
HTML or JSON and manages cookies. One request per connection.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpkit/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI demo app (python -m httpkit)
    ├── server.py            # Server: registration + lifecycle
    ├── pipeline.py          # RequestPipeline: one request, start to close
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # HTTPError hierarchy, error messages
    ├── templates.py         # FileRenderer for Server.render()
    ├── core/
    │   ├── socket_server.py # Listening socket + accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── thread_pool.py   # Worker policies
    ├── http/
    │   ├── request.py       # RequestParser, RequestContext
    │   ├── router.py        # Path compiler, RouteTable
    │   ├── cookies.py       # CookieJar
    │   └── response.py      # Html/Json results, serialization, error page
    └── middleware/
        ├── base.py          # Continue/Respond contract, chain runner
        └── logging.py       # Access log, request_logger()

=============================================================================
QUICK START
=============================================================================

    from httpkit import Server

    server = Server(port=3000)

    @server.get("/hello/:name")
    def hello(ctx):
        return f"Eae {ctx.params['name'].capitalize()}!"

    @server.post("/api/data")
    def data(ctx):
        return {"status": "ok", "user": ctx.body["nome"]}

    server.start()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import (
    BadRequest,
    HTTPError,
    NotFound,
    PayloadTooLarge,
    ServiceUnavailable,
    TemplateNotFound,
)
from .http import CookieJar, Html, Json, RequestContext, Response
from .middleware import CONTINUE, Continue, Respond, request_logger, with_middleware
from .pipeline import RequestPipeline
from .server import Server, create_app


__all__ = [
    "__version__",
    # Server
    "Server",
    "ServerConfig",
    "RequestPipeline",
    "create_app",
    # Request / response
    "RequestContext",
    "CookieJar",
    "Html",
    "Json",
    "Response",
    # Middleware
    "CONTINUE",
    "Continue",
    "Respond",
    "request_logger",
    "with_middleware",
    # Errors
    "HTTPError",
    "BadRequest",
    "NotFound",
    "PayloadTooLarge",
    "ServiceUnavailable",
    "TemplateNotFound",
]
