"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py   bytes ──► RequestContext (line, headers, body, query)  │
    │ router.py    (method, path) ──► Route + path params                 │
    │ cookies.py   Cookie header ──► CookieJar ──► Set-Cookie values      │
    │ response.py  Html | Json ──► Response ──► bytes; error page         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .cookies import CookieJar, build_set_cookie, parse_cookie_header
from .request import RequestContext, RequestParser, parse_query
from .response import (
    Html,
    Json,
    Response,
    build_response,
    error_response,
    format_http_date,
    render_error_page,
)
from .router import METHODS, Route, RouteTable, compile_path


__all__ = [
    # Request
    "RequestContext",
    "RequestParser",
    "parse_query",
    # Cookies
    "CookieJar",
    "build_set_cookie",
    "parse_cookie_header",
    # Response
    "Html",
    "Json",
    "Response",
    "build_response",
    "error_response",
    "format_http_date",
    "render_error_page",
    # Routing
    "METHODS",
    "Route",
    "RouteTable",
    "compile_path",
]
