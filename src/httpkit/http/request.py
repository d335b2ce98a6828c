"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request from a connection's byte stream and builds the
RequestContext handed to middlewares and handlers.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  POST /api/data?debug=1 HTTP/1.1\r\n       ← request line           │
    │  ─┬── ─────┬─── ───┬─── ────┬───                                     │
    │   │        │       │        └── version                             │
    │   │        │       └── query (split on the first "?")               │
    │   │        └── path                                                 │
    │   └── method                                                         │
    │                                                                      │
    │  Content-Type: application/json\r\n        ← headers, "Name: Value" │
    │  Content-Length: 16\r\n                                             │
    │  Cookie: session=abc\r\n                                            │
    │  \r\n                                      ← blank line ends headers │
    │                                                                      │
    │  {"nome":"Pedro"}                          ← exactly Content-Length │
    │                                               bytes, POST/PUT/PATCH │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. Request line: nothing at all means the peer hung up before sending
   anything; read_request() returns None and the connection is closed
   without a response. Fewer than two tokens is a 400.

2. Query: application/x-www-form-urlencoded pairs, percent-decoded,
   last value wins ("a=1&a=2" → {"a": "2"}).

3. Headers: split on the first ": ". Lines without that separator are
   skipped. Names are stored as received; get_header() looks them up
   case-insensitively.

4. Body: only for POST, PUT and PATCH with a positive Content-Length.
   With a JSON Content-Type the body is parsed; malformed JSON falls back
   to the raw text instead of failing the request.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional, Tuple
from urllib.parse import parse_qsl
import json
import uuid

from .cookies import CookieJar
from ..errors import BadRequest, PayloadTooLarge


BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass
class RequestContext:
    """
    Everything a middleware or handler knows about the current request.

    Created fresh for every connection and owned by the worker thread
    handling it. Only path matching (params) and cookie writes mutate it.

    Attributes:
        method: HTTP method as received (e.g., "GET")
        path: Path without the query string
        query: Decoded query parameters (last value wins)
        headers: Headers as received (name case preserved)
        params: Path parameters filled in by route matching
        body: Parsed JSON, raw text, or None when no body was read
        cookies: Request-scoped CookieJar
        version: HTTP version from the request line
        client_address: (ip, port) of the peer, when known
        id: Short random identifier used in log lines
    """

    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    cookies: CookieJar = field(default_factory=CookieJar)
    version: str = "HTTP/1.1"
    client_address: Optional[Tuple[str, int]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a header case-insensitively."""
        return find_header(self.headers, name, default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query.get(name, default)

    @property
    def user_agent(self) -> Optional[str]:
        return self.get_header("User-Agent")

    @property
    def client_ip(self) -> str:
        return self.client_address[0] if self.client_address else "-"


def find_header(headers: Dict[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    """Case-insensitive header lookup; an exact-case match is preferred."""
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return default


def parse_query(query: Optional[str]) -> Dict[str, str]:
    """
    Parse a query string into a flat mapping.

    Percent-escapes and "+" are decoded; for repeated keys the last value
    wins; keys with empty values are kept.

        parse_query("a=1&a=2&b=3")   # {"a": "2", "b": "3"}
    """
    if not query:
        return {}
    return dict(parse_qsl(query, keep_blank_values=True))


def split_target(target: str) -> Tuple[str, Optional[str]]:
    """Split "/path?query" on the first "?"."""
    path, sep, query = target.partition("?")
    return path, (query if sep else None)


class RequestParser:
    """
    Reads a request off a binary stream (socket.makefile("rb") or BytesIO).

    Usage:
        parser = RequestParser()
        request = parser.read_request(conn.reader, conn.address)
        if request is None:
            ...  # peer closed before sending anything

    Args:
        max_body_size: Largest Content-Length accepted (None = no limit)
        encoding: Text encoding for the request line, headers and body
    """

    def __init__(self, max_body_size: Optional[int] = None, encoding: str = "utf-8"):
        self.max_body_size = max_body_size
        self.encoding = encoding

    def read_request(
        self,
        stream: BinaryIO,
        client_address: Optional[Tuple[str, int]] = None,
    ) -> Optional[RequestContext]:
        """
        Read and parse one request.

        Returns:
            RequestContext, or None if the stream was already at EOF

        Raises:
            BadRequest: Request line has fewer than two tokens
            PayloadTooLarge: Content-Length above max_body_size
        """
        line = stream.readline()
        if not line:
            return None

        method, target, version = self.parse_request_line(self._decode(line))
        path, query = split_target(target)
        headers = self.read_headers(stream)
        body = self.read_body(stream, method, headers)

        return RequestContext(
            method=method,
            path=path,
            query=parse_query(query),
            headers=headers,
            body=body,
            cookies=CookieJar(find_header(headers, "Cookie")),
            version=version,
            client_address=client_address,
        )

    def parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """Split "METHOD target VERSION" into its parts."""
        tokens = line.split()
        if len(tokens) < 2:
            raise BadRequest()
        version = tokens[2] if len(tokens) > 2 else "HTTP/1.0"
        return tokens[0], tokens[1], version

    def read_headers(self, stream: BinaryIO) -> Dict[str, str]:
        """Read header lines up to the blank line (or end of stream)."""
        headers: Dict[str, str] = {}
        while True:
            raw = stream.readline()
            if not raw:
                break
            line = self._decode(raw).rstrip("\r\n")
            if not line:
                break
            name, sep, value = line.partition(": ")
            if not sep:
                continue
            headers[name] = value.strip()
        return headers

    def read_body(self, stream: BinaryIO, method: str, headers: Dict[str, str]) -> Any:
        """
        Read the body for POST/PUT/PATCH requests.

        Returns:
            Parsed JSON, decoded text, or None when no body applies
        """
        if method not in BODY_METHODS:
            return None

        length = content_length(headers)
        if length <= 0:
            return None
        if self.max_body_size is not None and length > self.max_body_size:
            raise PayloadTooLarge()

        text = self._decode(stream.read(length))

        content_type = find_header(headers, "Content-Type") or ""
        if "application/json" in content_type:
            try:
                return json.loads(text)
            except ValueError:
                return text
        return text

    def _decode(self, data: bytes) -> str:
        return data.decode(self.encoding, errors="replace")


def content_length(headers: Dict[str, str]) -> int:
    """Declared Content-Length, or 0 when absent or not a number."""
    value = find_header(headers, "Content-Length")
    if value is None:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0
