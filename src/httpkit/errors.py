"""
=============================================================================
ERROR TYPES
=============================================================================

Every failure inside one request's handling ends at a single boundary
(RequestPipeline.dispatch) and becomes an HTML error page. This module
defines the typed channel used to pick the status code and the text that
is safe to show to the client.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     FAILURE → RESPONSE MAPPING                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPError(status, message)   →  <status> page with <message>      │
    │   NotFound                     →  404 "Página não encontrada"        │
    │   BadRequest                   →  400 "Requisição malformada"        │
    │   PayloadTooLarge              →  413                               │
    │   ServiceUnavailable           →  503                               │
    │   TemplateNotFound             →  500 (not an HTTPError)            │
    │   anything else                →  500 generic message               │
    │                                    (str(exc) when debug=True)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import Optional


NOT_FOUND_MESSAGE = "Página não encontrada"
INTERNAL_ERROR_MESSAGE = "Erro interno do servidor"


class HTTPError(Exception):
    """
    A failure that maps directly to an HTTP status code.

    Handlers and middlewares raise this to answer with something other
    than 200. The message is rendered verbatim (HTML-escaped) in the
    error page, so it must not carry internal detail.

    Attributes:
        status: HTTP status code (e.g., 400, 403, 404)
        message: Human-readable, client-safe description
    """

    status: int = 500
    default_message: str = INTERNAL_ERROR_MESSAGE

    def __init__(self, status: Optional[int] = None, message: Optional[str] = None):
        if status is not None:
            self.status = status
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class NotFound(HTTPError):
    """404 - no registered route matches the method and path."""

    status = 404
    default_message = NOT_FOUND_MESSAGE

    def __init__(self, message: Optional[str] = None):
        super().__init__(message=message)


class BadRequest(HTTPError):
    """400 - the request line could not be understood."""

    status = 400
    default_message = "Requisição malformada"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message=message)


class PayloadTooLarge(HTTPError):
    """413 - declared Content-Length exceeds ServerConfig.max_body_size."""

    status = 413
    default_message = "Corpo da requisição muito grande"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message=message)


class ServiceUnavailable(HTTPError):
    """503 - the worker pool refused the connection."""

    status = 503
    default_message = "Servidor sobrecarregado"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message=message)


class TemplateNotFound(LookupError):
    """
    Raised by the renderer when a file does not exist under public_root.

    Deliberately not an HTTPError: a missing template is a server-side
    fault and is answered with 500.
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"File not found: {name}")
