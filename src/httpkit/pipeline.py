"""
=============================================================================
REQUEST PIPELINE
=============================================================================

Everything that happens to one connection, from the first byte read to
the close:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ONE CONNECTION, ONE REQUEST                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read request line ──── nothing? ──────────────────────┐           │
    │          │                                               │           │
    │   read headers, body (POST/PUT/PATCH)                    │           │
    │          │                                               │           │
    │   build RequestContext + CookieJar                       │           │
    │          │                                               │           │
    │   lookup route ──────── no match? ──► 404 page ──┐       │           │
    │          │                                        │       │           │
    │   extract params                                  │       │           │
    │          │                                        │       │           │
    │   global middlewares ─┐                           │       │           │
    │   route middlewares ──┴─ Respond? ──► body ──┐    │       │           │
    │          │                                   │    │       │           │
    │   handler(ctx) ──► Html | Json ──────────────┤    │       │           │
    │          │                                   │    │       │           │
    │          │ raises? ──► 4xx/500 page ─────────┼────┤       │           │
    │          │                                   ▼    ▼       │           │
    │          │                          serialize + Set-Cookie│           │
    │          │                                   │            │           │
    │          └─────────────────────────► single sendall()     │           │
    │                                              │            │           │
    │                                           close ◄─────────┘           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Stages run strictly in sequence inside the worker that owns the
connection. All failures stop at this module's boundary: nothing raised
by a handler or middleware reaches the accept loop or another connection.

=============================================================================
FAILURE MAPPING
=============================================================================

    no matching route          → 404 "Página não encontrada"
    HTTPError(status, msg)     → <status> page with msg
    any other exception        → 500 generic message (str(exc) if debug)
    peer sent nothing          → closed silently, no response
    socket timeout / reset     → closed silently (logged at DEBUG)

Error pages never include Set-Cookie headers.

=============================================================================
"""

from dataclasses import dataclass
from typing import BinaryIO, Iterable, Optional, Tuple
import io
import logging
import time

from .core.connection import Connection, ConnectionState
from .errors import HTTPError, INTERNAL_ERROR_MESSAGE, NOT_FOUND_MESSAGE
from .http.request import RequestContext, RequestParser
from .http.response import Response, error_response, result_response, to_result
from .http.router import RouteTable
from .middleware.base import Middleware, MiddlewareChain
from .middleware.logging import AccessLog


logger = logging.getLogger(__name__)


@dataclass
class Exchange:
    """A parsed request (None if it could not be parsed) and its response."""

    request: Optional[RequestContext]
    response: Response


class RequestPipeline:
    """
    Turns a connection's bytes into exactly one response.

    Args:
        routes: Route table (frozen before serving)
        global_middlewares: Middlewares run before every route's own
        parser: RequestParser (defaults to one with no body limit)
        access_log: AccessLog used after each response is written
        debug: Show unexpected failure messages in 500 pages
    """

    def __init__(
        self,
        routes: RouteTable,
        global_middlewares: Iterable[Middleware] = (),
        parser: Optional[RequestParser] = None,
        access_log: Optional[AccessLog] = None,
        debug: bool = False,
    ):
        self.routes = routes
        self.global_middlewares = MiddlewareChain(global_middlewares)
        self.parser = parser or RequestParser()
        self.access_log = access_log or AccessLog()
        self.debug = debug

    # =========================================================================
    # CONNECTION ENTRY POINT (runs in a worker thread)
    # =========================================================================

    def handle(self, conn: Connection) -> None:
        """Serve one request on conn and close it, whatever happens."""
        started = time.monotonic()

        with conn:
            try:
                exchange = self.process(conn.reader, conn.address)
            except OSError as e:
                # Timeouts and resets while reading: nobody left to answer.
                logger.debug(f"[{conn.id}] Read aborted: {e}")
                return

            if exchange is None:
                logger.debug(f"[{conn.id}] Peer closed before sending a request")
                return

            conn.state = ConnectionState.PROCESSING
            response = exchange.response
            if conn.send(response.to_bytes()) and exchange.request is not None:
                self.access_log.record(exchange.request, response.status, len(response.body), started)

    # =========================================================================
    # PARSE + DISPATCH
    # =========================================================================

    def process(
        self,
        stream: BinaryIO,
        client_address: Optional[Tuple[str, int]] = None,
    ) -> Optional[Exchange]:
        """
        Read one request from stream and produce its response.

        Returns:
            Exchange, or None if the stream was empty (abandoned)

        Raises:
            OSError: Socket-level failures while reading
        """
        try:
            request = self.parser.read_request(stream, client_address)
        except OSError:
            # Not a 500: handle() closes silently
            raise
        except HTTPError as e:
            logger.info(f"Rejected request: {e.status} {e.message}")
            return Exchange(None, error_response(e.status, e.message))
        except Exception as e:
            logger.exception(f"Failed to read request: {e}")
            return Exchange(None, error_response(500, self._failure_message(e)))

        if request is None:
            return None
        return Exchange(request, self.dispatch(request))

    def process_bytes(self, raw: bytes, client_address: Optional[Tuple[str, int]] = None) -> Optional[Exchange]:
        """process() over an in-memory request."""
        return self.process(io.BytesIO(raw), client_address)

    def dispatch(self, request: RequestContext) -> Response:
        """
        Route, run middlewares, invoke the handler and serialize.

        Never raises: every failure becomes an error page.
        """
        route = self.routes.lookup(request.method, request.path)
        if route is None:
            logger.debug(f"[{request.id}] No route for {request.method} {request.path}")
            return error_response(404, NOT_FOUND_MESSAGE)

        try:
            request.params.update(route.extract_params(request.path))

            chain = self.global_middlewares + route.middlewares
            short_circuit = chain.run(request)
            if short_circuit is not None:
                return result_response(short_circuit, request.cookies.outbound)

            result = to_result(route.handler(request))
            return result_response(result, request.cookies.outbound)

        except HTTPError as e:
            logger.info(f"[{request.id}] {request.method} {request.path} → {e.status}: {e.message}")
            return error_response(e.status, e.message)

        except Exception as e:
            logger.exception(f"[{request.id}] Handler error on {request.method} {request.path}: {e}")
            return error_response(500, self._failure_message(e))

    def _failure_message(self, error: Exception) -> str:
        if self.debug:
            return str(error) or type(error).__name__
        return INTERNAL_ERROR_MESSAGE
