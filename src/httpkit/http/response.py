"""
=============================================================================
HTTP RESPONSE
=============================================================================

Handler results, wire serialization and the built-in error page.

=============================================================================
HANDLER RESULTS
=============================================================================

A handler returns one of two tagged results:

    Html("<h1>Oi</h1>")                 → body sent as-is
    Json({"status": "ok"})              → body is the compact JSON text

Plain values are coerced: a str becomes Html, anything else becomes Json.
Both results accept status, content_type and extra headers.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200\r\n                          ← no reason phrase
    Content-Type: text/html; charset=utf-8\r\n
    Content-Length: 10\r\n                    ← byte length, not characters
    Set-Cookie: a=1\r\n                       ← repeated, never merged
    Set-Cookie: b=2\r\n
    \r\n
    Eae World!

Headers are kept as an ordered list of (name, value) pairs so the same
name can appear more than once. A caller-provided Content-Type without a
charset gets "; charset=utf-8" appended.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional, Sequence, Tuple
import json


DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"

Header = Tuple[str, str]


@dataclass
class Html:
    """A ready-to-send text/HTML body."""

    body: str
    status: int = 200
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        return self.body


@dataclass
class Json:
    """A value serialized to compact JSON text."""

    value: Any
    status: int = 200
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        return json.dumps(self.value, separators=(",", ":"), ensure_ascii=False)


def to_result(value: Any):
    """
    Normalize a handler return value into Html or Json.

    Html/Json pass through; str becomes Html; anything else becomes Json
    (and fails at render time if it is not JSON-serializable).
    """
    if isinstance(value, (Html, Json)):
        return value
    if isinstance(value, str):
        return Html(value)
    return Json(value)


@dataclass
class Response:
    """
    A serialized-ready HTTP response.

    Attributes:
        status: Numeric status code
        body: Encoded body bytes
        headers: Ordered (name, value) pairs; names may repeat
    """

    status: int = 200
    body: bytes = b""
    headers: List[Header] = field(default_factory=list)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status}"

    def get_header(self, name: str) -> Optional[str]:
        """First value for a header name (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def get_all(self, name: str) -> List[str]:
        """Every value for a header name, in order (case-insensitive)."""
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def to_bytes(self) -> bytes:
        """Status line, headers, blank line and body as one buffer."""
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        lines.append("")
        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + self.body


def build_response(
    status: int,
    body: str,
    headers: Optional[Dict[str, str]] = None,
    cookies: Sequence[str] = (),
) -> Response:
    """
    Assemble a Response with the automatic headers.

    Content-Type defaults to text/html; charset=utf-8 and Content-Length
    is always the UTF-8 byte length of the body. Caller headers replace
    the defaults; a Content-Type lacking a charset gets one appended.
    Each cookie string becomes its own Set-Cookie header.

    Args:
        status: Numeric status code
        body: Body text
        headers: Extra headers (optional)
        cookies: Serialized Set-Cookie values, in order

    Returns:
        Response ready for to_bytes()
    """
    encoded = body.encode("utf-8")

    merged: Dict[str, str] = {
        "Content-Type": DEFAULT_CONTENT_TYPE,
        "Content-Length": str(len(encoded)),
    }
    for name, value in (headers or {}).items():
        key = _canonical_key(merged, name)
        if key.lower() == "content-type" and "charset=" not in value.lower():
            value = f"{value}; charset=utf-8"
        if key.lower() == "content-length":
            continue
        merged[key] = value

    header_list: List[Header] = list(merged.items())
    header_list.extend(("Set-Cookie", cookie) for cookie in cookies)

    return Response(status=status, body=encoded, headers=header_list)


def _canonical_key(headers: Dict[str, str], name: str) -> str:
    """Reuse an existing key that differs only by case."""
    for key in headers:
        if key.lower() == name.lower():
            return key
    return name


def result_response(result, cookies: Sequence[str] = ()) -> Response:
    """Serialize an Html/Json handler result."""
    headers = dict(result.headers)
    if result.content_type:
        headers["Content-Type"] = result.content_type
    return build_response(result.status, result.render(), headers, cookies)


# =============================================================================
# ERROR PAGE
# =============================================================================

ERROR_PAGE = """<!DOCTYPE html>
<html lang="pt-br">
<head>
  <meta charset="UTF-8">
  <title>Erro {code}</title>
  <style>
    body {{ background: #111; color: #eee; font-family: sans-serif; text-align: center; padding: 5em; }}
    h1 {{ font-size: 4em; margin-bottom: 0.5em; }}
    p {{ color: #888; }}
  </style>
</head>
<body>
  <h1>Erro {code}</h1>
  <p>{message}</p>
</body>
</html>
"""


def render_error_page(code: int, message: str) -> str:
    """Dark, centered HTML page showing the status code and message."""
    return ERROR_PAGE.format(code=code, message=escape(message))


def error_response(code: int, message: str) -> Response:
    """An error page response. Error responses never carry cookies."""
    return build_response(code, render_error_page(code, message))


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 01 Jan 2026 12:00:00 GMT

    HTTP dates are always GMT; pass an aware UTC datetime.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
