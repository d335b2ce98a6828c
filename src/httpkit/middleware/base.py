"""
=============================================================================
MIDDLEWARE CONTRACT
=============================================================================

A middleware is a plain function that receives the RequestContext before
the handler runs and answers with one of two results:

    Continue         → proceed to the next middleware (or the handler)
    Respond(body)    → stop here; body becomes the response

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       MIDDLEWARE EXECUTION                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   global 1 ─► global 2 ─► route 1 ─► route 2 ─► HANDLER             │
    │      │           │           │          │                            │
    │      └───────────┴───────────┴──────────┴──► Respond? stop here     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Globals (registered with Server.use) run first, in registration order,
then the route's own middlewares. The FIRST Respond wins: the remaining
middlewares and the handler are skipped. Globals short-circuit exactly
like route middlewares.

Return values are normalized:

    None, CONTINUE     → Continue
    Respond(...)       → Respond
    "text"             → Respond("text")
    anything else      → Continue (logged at DEBUG)

There is no error channel besides raising: an exception (HTTPError for a
chosen status) aborts the whole request.

=============================================================================
USAGE
=============================================================================

    def require_login(ctx):
        if not ctx.cookies.has("session"):
            return Respond("Acesso negado")
        return CONTINUE

    server.get("/admin", with_middleware(require_login), admin_page)

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging


logger = logging.getLogger(__name__)


class Continue:
    """Proceed with the chain. Use the CONTINUE singleton."""

    _instance: Optional["Continue"] = None

    def __new__(cls) -> "Continue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CONTINUE"


CONTINUE = Continue()


@dataclass
class Respond:
    """
    Short-circuit the request.

    Attributes:
        body: Full response body
        status: Status code (200 unless the middleware says otherwise)
        content_type: Optional Content-Type override
        headers: Extra response headers
    """

    body: str
    status: int = 200
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        return self.body


# Middleware: RequestContext -> None | Continue | Respond | str
Middleware = Callable[[Any], Any]


def normalize_result(result: Any, middleware: Middleware) -> Optional[Respond]:
    """Map a raw middleware return value to Respond, or None to continue."""
    if result is None or isinstance(result, Continue):
        return None
    if isinstance(result, Respond):
        return result
    if isinstance(result, str):
        return Respond(result)
    logger.debug(f"Ignoring {type(result).__name__} returned by middleware {_name(middleware)}")
    return None


class MiddlewareChain:
    """
    An ordered, immutable list of middlewares.

    run() calls each middleware in order and returns the first Respond,
    or None when every middleware let the request through.
    """

    def __init__(self, middlewares: Iterable[Middleware] = ()):
        self._middlewares = tuple(middlewares)

    def run(self, ctx: Any) -> Optional[Respond]:
        for middleware in self._middlewares:
            response = normalize_result(middleware(ctx), middleware)
            if response is not None:
                logger.debug(f"[{getattr(ctx, 'id', '-')}] Short-circuited by {_name(middleware)}")
                return response
        return None

    def __add__(self, other: Iterable[Middleware]) -> "MiddlewareChain":
        return MiddlewareChain(self._middlewares + tuple(other))

    def __iter__(self):
        return iter(self._middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)


def with_middleware(*middlewares: Middleware) -> Dict[str, List[Middleware]]:
    """
    Package middlewares into the options shape route registration accepts.

        server.get("/especial", with_middleware(log_agent), handler)
    """
    return {"middlewares": list(middlewares)}


def _name(middleware: Middleware) -> str:
    return getattr(middleware, "__name__", type(middleware).__name__)
