"""
=============================================================================
COOKIE JAR
=============================================================================

One CookieJar per request. It holds two independent things:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            CookieJar                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   INBOUND  (read-only, parsed once from the Cookie header)          │
    │                                                                      │
    │       Cookie: session=abc; name=va%20lue                            │
    │                    │                                                 │
    │                    ▼                                                 │
    │       {"session": "abc", "name": "va lue"}                          │
    │                                                                      │
    │   OUTBOUND (append-only, one Set-Cookie header per entry)           │
    │                                                                      │
    │       jar.set("theme", "dark", path="/", http_only=True)            │
    │                    │                                                 │
    │                    ▼                                                 │
    │       ["theme=dark; Path=/; HttpOnly"]                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Setting the same name twice produces two Set-Cookie entries; both are
sent. Names and values are not validated against RFC 6265.

=============================================================================
SET-COOKIE ATTRIBUTES
=============================================================================

    path       → Path=/admin
    domain     → Domain=example.com
    max_age    → Max-Age=3600        (0 is emitted; it expires the cookie)
    expires    → Expires=Wed, 21 Oct 2026 07:28:00 GMT
    http_only  → HttpOnly            (flag, no value)
    secure     → Secure              (flag, no value)
    same_site  → SameSite=Lax

Options left as None/False are omitted entirely; no defaults are added.

=============================================================================
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
from urllib.parse import quote, unquote

from .response import format_http_date


Expires = Union[datetime, int, float]


def parse_cookie_header(header: Optional[str]) -> Dict[str, str]:
    """
    Parse a Cookie header into a name → decoded value mapping.

    Pairs are separated by "; " and split on the first "=". Values are
    percent-decoded. Pairs without "=" are skipped; a repeated name keeps
    its last value.
    """
    cookies: Dict[str, str] = {}
    if not header:
        return cookies

    for pair in header.split("; "):
        name, sep, value = pair.partition("=")
        if not sep:
            continue
        cookies[name] = unquote(value)

    return cookies


def build_set_cookie(
    name: str,
    value: object,
    path: Optional[str] = None,
    domain: Optional[str] = None,
    max_age: Optional[int] = None,
    expires: Optional[Expires] = None,
    http_only: bool = False,
    secure: bool = False,
    same_site: Optional[str] = None,
) -> str:
    """
    Serialize one cookie as the value of a Set-Cookie header.

    The value is converted with str() and percent-encoded, so a space
    becomes %20.
    """
    parts = [f"{name}={quote(str(value), safe='')}"]

    if path is not None:
        parts.append(f"Path={path}")
    if domain is not None:
        parts.append(f"Domain={domain}")
    if max_age is not None:
        parts.append(f"Max-Age={max_age}")
    if expires is not None:
        parts.append(f"Expires={_format_expires(expires)}")
    if http_only:
        parts.append("HttpOnly")
    if secure:
        parts.append("Secure")
    if same_site is not None:
        parts.append(f"SameSite={same_site}")

    return "; ".join(parts)


def _format_expires(expires: Expires) -> str:
    """Render an Expires value as an HTTP-date. Naive datetimes are UTC."""
    if isinstance(expires, datetime):
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return format_http_date(expires.astimezone(timezone.utc))
    return format_http_date(datetime.fromtimestamp(expires, tz=timezone.utc))


class CookieJar:
    """
    Request-scoped cookie access.

    Usage inside a handler:

        def profile(ctx):
            user = ctx.cookies.get("user")
            ctx.cookies.set("last_seen", "now", path="/", max_age=3600)
            ctx.cookies.delete("flash")
            ...

    Args:
        header: Raw Cookie header value, or None if the request had none
    """

    def __init__(self, header: Optional[str] = None):
        self._inbound = parse_cookie_header(header)
        self._outbound: List[str] = []

    def get(self, name: Optional[str] = None, default: Optional[str] = None):
        """
        Get a decoded inbound cookie value.

        Called without a name, returns a copy of the whole inbound mapping.
        """
        if name is None:
            return dict(self._inbound)
        return self._inbound.get(name, default)

    def get_all(self) -> List[Dict[str, str]]:
        """Inbound cookies as single-entry dicts, in header order."""
        return [{name: value} for name, value in self._inbound.items()]

    def has(self, name: str) -> bool:
        return name in self._inbound

    def to_dict(self) -> Dict[str, str]:
        return dict(self._inbound)

    def set(self, name: str, value: object, **options) -> None:
        """
        Queue a Set-Cookie header for the response.

        Keyword options: path, domain, max_age, expires, http_only,
        secure, same_site (see module docstring). Queued values are
        read back from outbound.
        """
        self._outbound.append(build_set_cookie(name, value, **options))

    def delete(self, name: str, **options) -> None:
        """Expire a cookie on the client: empty value with Max-Age=0."""
        options["max_age"] = 0
        self.set(name, "", **options)

    @property
    def outbound(self) -> List[str]:
        """Set-Cookie values queued so far (a copy, in order)."""
        return list(self._outbound)

    def __contains__(self, name: object) -> bool:
        return name in self._inbound

    def __len__(self) -> int:
        return len(self._inbound)

    def __repr__(self) -> str:
        return f"CookieJar(inbound={self._inbound!r}, outbound={self._outbound!r})"
