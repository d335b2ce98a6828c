"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps (method, path) pairs to handlers. Two pieces live here:

- compile_path(): turns "/users/:id" into an anchored regex plus the
  ordered list of parameter names.
- RouteTable: per-method lists of compiled routes, filled during setup
  and frozen before the server accepts its first connection.

=============================================================================
PATTERN COMPILATION
=============================================================================

    Pattern:  /users/:id/posts/:post_id
                     │          │
                     ▼          ▼
    Regex:    ^/users/([^/]+)/posts/([^/]+)$
                      ───────       ───────
                      group 1       group 2
    Names:    ["id", "post_id"]

    - Each "/:name" segment captures ONE path segment (no slashes).
    - Everything else is matched literally (regex-escaped).
    - Anchors on both ends: the whole path must match, never a prefix.

Captures are positional: the Nth group belongs to the Nth name. There is
no trailing-slash normalization, so "/users/" does not match "/users".

=============================================================================
LOOKUP
=============================================================================

    GET /a/b
        │
        ▼
    routes["GET"] = [ /a/:x , /a/b ]     ← registration order
                       │
                       └── first matcher that accepts the path wins

Patterns may overlap; registration order is the tie-break. Register the
more specific route first when both could match.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import unquote
import logging
import re


logger = logging.getLogger(__name__)


# Handler: RequestContext -> Html | Json | str | JSON-serializable value
Handler = Callable[[Any], Any]

# Middleware: RequestContext -> None | Continue | Respond | str
Middleware = Callable[[Any], Any]

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")

# "/:name" where name is a word (letters, digits, underscore)
_PARAM_SEGMENT = re.compile(r"/:(\w+)")


def compile_path(pattern: str) -> Tuple[Pattern[str], List[str]]:
    """
    Compile a route pattern into an anchored regex and its parameter names.

    Literal text between parameters is escaped, so characters such as
    "." or "+" in a pattern match themselves.

    Args:
        pattern: Route pattern, e.g. "/users/:id"

    Returns:
        (compiled regex, ordered parameter names)

    Example:
        >>> regex, names = compile_path("/hello/:name")
        >>> names
        ['name']
        >>> regex.match("/hello/World").group(1)
        'World'
    """
    names: List[str] = []
    parts = ["^"]
    position = 0

    for segment in _PARAM_SEGMENT.finditer(pattern):
        parts.append(re.escape(pattern[position:segment.start()]))
        parts.append("/([^/]+)")
        names.append(segment.group(1))
        position = segment.end()

    parts.append(re.escape(pattern[position:]))
    parts.append("$")

    return re.compile("".join(parts)), names


@dataclass(frozen=True)
class Route:
    """
    A compiled route. Immutable once registered.

    Attributes:
        method: HTTP method (upper-case)
        pattern: Pattern text as registered ("/users/:id")
        matcher: Compiled, anchored regex
        param_names: Ordered parameter names, one per capture group
        handler: Function called with the RequestContext
        middlewares: Route-level middlewares, run in order after globals
    """

    method: str
    pattern: str
    matcher: Pattern[str] = field(repr=False)
    param_names: Tuple[str, ...]
    handler: Handler = field(repr=False)
    middlewares: Tuple[Middleware, ...] = field(default=(), repr=False)

    def extract_params(self, path: str) -> Dict[str, str]:
        """
        Pull the percent-decoded parameter values out of a matching path.

        Returns an empty dict if the path does not match this route.
        """
        match = self.matcher.match(path)
        if match is None:
            return {}
        return {
            name: unquote(value)
            for name, value in zip(self.param_names, match.groups())
        }


class RouteTable:
    """
    Per-method ordered route lists.

    Usage:
        table = RouteTable()
        table.register("GET", "/users/:id", get_user)
        table.freeze()

        route = table.lookup("GET", "/users/42")
        route.extract_params("/users/42")   # {"id": "42"}

    The table is written only during setup. freeze() swaps every list for
    a tuple and rejects further registration, so worker threads can read
    it concurrently without locking.
    """

    def __init__(self, methods: Sequence[str] = METHODS):
        self._routes: Dict[str, Any] = {method: [] for method in methods}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        method: str,
        pattern: str,
        handler: Handler,
        middlewares: Optional[Sequence[Middleware]] = None,
    ) -> Route:
        """
        Compile a pattern and append the route to its method's list.

        Args:
            method: HTTP method
            pattern: Route pattern with optional ":name" segments
            handler: Callable receiving the RequestContext
            middlewares: Route-level middlewares (optional)

        Returns:
            The registered Route

        Raises:
            RuntimeError: If the table has been frozen
            ValueError: If the method is not supported
        """
        if self._frozen:
            raise RuntimeError("Route table is frozen; register routes before start()")

        method = method.upper()
        if method not in self._routes:
            raise ValueError(f"Unsupported HTTP method: {method}")

        matcher, names = compile_path(pattern)
        route = Route(
            method=method,
            pattern=pattern,
            matcher=matcher,
            param_names=tuple(names),
            handler=handler,
            middlewares=tuple(middlewares or ()),
        )
        self._routes[method].append(route)
        logger.debug(f"Registered {method} {pattern}")
        return route

    def lookup(self, method: str, path: str) -> Optional[Route]:
        """
        Return the first route (registration order) accepting the path.

        Unknown methods yield None rather than an error.
        """
        for route in self._routes.get(method, ()):
            if route.matcher.match(path):
                return route
        return None

    def freeze(self) -> "RouteTable":
        """Make the table read-only. Idempotent."""
        if not self._frozen:
            self._routes = {method: tuple(routes) for method, routes in self._routes.items()}
            self._frozen = True
        return self

    def routes(self) -> List[Route]:
        """All registered routes, grouped by method in declaration order."""
        return [route for routes in self._routes.values() for route in routes]

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())
