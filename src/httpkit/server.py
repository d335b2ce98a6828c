"""
=============================================================================
SERVER
=============================================================================

The application-facing object: collects routes and middlewares during
setup, then freezes them and serves.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SERVER LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SETUP (single thread)              SERVING (many threads)          │
    │                                                                      │
    │   server.use(mw)          ──┐                                        │
    │   server.get(path, ...)   ──┼──► RouteTable ──freeze()──┐            │
    │   server.post(path, ...)  ──┘    global mws  ──tuple()──┤            │
    │                                                         ▼            │
    │   server.start() ─────────────────────────────► RequestPipeline      │
    │                                                  (read-only)         │
    │                                                         │            │
    │   SocketServer.accept() ──► worker policy ──► pipeline.handle(conn) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Registration after start() raises RuntimeError: the route table and the
middleware list are an immutable snapshot while connections are served,
so lookups need no locks.

=============================================================================
REGISTRATION STYLES
=============================================================================

    server = Server(port=3000)

    # Direct
    server.get("/", lambda ctx: "Olá mundo!")
    server.get("/especial", server.with_middleware(log_ua), especial)

    # Decorator
    @server.get("/hello/:name")
    def hello(ctx):
        return f"Eae {ctx.params['name'].capitalize()}!"

    @server.post("/api/data", middlewares=[require_login])
    def data(ctx):
        return {"received": ctx.body}

    server.use(request_logger())
    server.start()            # blocks until SIGINT/SIGTERM or shutdown()

=============================================================================
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import logging
import os

from .config import ServerConfig
from .core import Connection, SocketServer, create_worker_policy
from .errors import ServiceUnavailable
from .http.request import RequestParser
from .http.response import error_response
from .http.router import Handler, RouteTable
from .middleware import AccessLog, Middleware, with_middleware
from .pipeline import RequestPipeline
from .templates import FileRenderer


logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 30.0

RouteOptions = Dict[str, Sequence[Middleware]]


class Server:
    """
    Minimal HTTP server toolkit.

    Args:
        config: ServerConfig (defaults used when omitted)
        **overrides: Individual config fields, e.g. Server(port=3000)

    Raises:
        ValueError: If the resulting configuration is invalid
    """

    def __init__(self, config: Optional[ServerConfig] = None, **overrides: Any):
        config = config or ServerConfig()
        if overrides:
            config = replace(config, **overrides)
        config.validate()
        self.config = config

        self.public_root = config.public_root or os.path.join(os.getcwd(), "public")
        self.renderer = FileRenderer(self.public_root)

        self._routes = RouteTable()
        self._middlewares: List[Middleware] = []
        self._pipeline: Optional[RequestPipeline] = None

        self._socket_server = SocketServer(
            host=config.host,
            port=config.port,
            backlog=config.backlog,
            timeout=config.timeout,
        )
        self._workers = None

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "Server":
        """
        Add a global middleware, run before every route's own middlewares.

        Returns:
            Self for chaining
        """
        if self._routes.frozen:
            raise RuntimeError("Cannot add middleware after the server has started")
        self._middlewares.append(middleware)
        return self

    @staticmethod
    def with_middleware(*middlewares: Middleware) -> Dict[str, List[Middleware]]:
        """Package middlewares as route options: {"middlewares": [...]}."""
        return with_middleware(*middlewares)

    def route(
        self,
        method: str,
        path: str,
        options: Union[RouteOptions, Handler, None] = None,
        handler: Optional[Handler] = None,
        *,
        middlewares: Optional[Sequence[Middleware]] = None,
    ):
        """
        Register a handler for method + path.

        Called with a handler it registers immediately and returns the
        handler; called without one it returns a decorator.

            server.route("GET", "/", index)
            server.route("GET", "/x", {"middlewares": [mw]}, handler)

            @server.route("GET", "/users/:id")
            def user(ctx): ...
        """
        if handler is None and callable(options):
            options, handler = None, options

        route_middlewares = list((options or {}).get("middlewares", ()))
        route_middlewares.extend(middlewares or ())

        def register(func: Handler) -> Handler:
            self._routes.register(method, path, func, route_middlewares)
            return func

        if handler is not None:
            return register(handler)
        return register

    def get(self, path: str, options=None, handler=None, **kwargs):
        return self.route("GET", path, options, handler, **kwargs)

    def post(self, path: str, options=None, handler=None, **kwargs):
        return self.route("POST", path, options, handler, **kwargs)

    def put(self, path: str, options=None, handler=None, **kwargs):
        return self.route("PUT", path, options, handler, **kwargs)

    def delete(self, path: str, options=None, handler=None, **kwargs):
        return self.route("DELETE", path, options, handler, **kwargs)

    def patch(self, path: str, options=None, handler=None, **kwargs):
        return self.route("PATCH", path, options, handler, **kwargs)

    def options(self, path: str, options=None, handler=None, **kwargs):
        return self.route("OPTIONS", path, options, handler, **kwargs)

    @property
    def routes(self) -> RouteTable:
        return self._routes

    # =========================================================================
    # RENDERING
    # =========================================================================

    def render(self, file: str, /, **variables: Any) -> str:
        """
        Render a file under public_root for a handler to return.

        Raises:
            TemplateNotFound: If the file does not exist under public_root
        """
        return self.renderer.render(file, **variables)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def build_pipeline(self) -> RequestPipeline:
        """Freeze registration and build the pipeline that serves requests."""
        if self._pipeline is None:
            self._routes.freeze()
            self._pipeline = RequestPipeline(
                routes=self._routes,
                global_middlewares=tuple(self._middlewares),
                parser=RequestParser(max_body_size=self.config.max_body_size),
                access_log=AccessLog(log_format=self.config.log_format),
                debug=self.config.debug,
            )
        return self._pipeline

    def start(self):
        """
        Serve until shutdown() or SIGINT/SIGTERM. Blocks the calling thread.

        Raises:
            OSError: If the address cannot be bound
        """
        self._setup_logging()
        self.build_pipeline()

        self._workers = create_worker_policy(self.config.max_workers, self.config.queue_size)
        self._workers.start()

        policy = "thread per connection" if self.config.max_workers is None else f"{self.config.max_workers} workers"
        logger.info(f"Starting httpkit: {len(self._routes)} routes, {policy}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown_workers()

    def shutdown(self):
        """Stop accepting connections. start() returns once in-flight requests finish."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("httpkit").setLevel(level)

    def _shutdown_workers(self):
        if self._workers is not None:
            logger.info("Waiting for in-flight requests...")
            self._workers.shutdown(wait=True, timeout=SHUTDOWN_TIMEOUT)
            self._workers = None
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HAND-OFF (accept loop thread)
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Submit a connection to the workers; answer 503 if they refuse it."""
        if self._workers.submit(self._pipeline.handle, conn):
            return

        logger.warning(f"[{conn.id}] Workers saturated, rejecting connection")
        rejected = ServiceUnavailable()
        with conn:
            conn.send(error_response(rejected.status, rejected.message).to_bytes())


def create_app(config: Optional[ServerConfig] = None, **overrides: Any) -> Server:
    """Factory used by the CLI and tests; config from the environment when omitted."""
    return Server(config or ServerConfig.from_env(), **overrides)
