"""
Middleware: the Continue/Respond contract, the chain runner and
request logging.
"""

from .base import CONTINUE, Continue, Middleware, MiddlewareChain, Respond, with_middleware
from .logging import AccessLog, RequestLog, request_logger


__all__ = [
    "CONTINUE",
    "Continue",
    "Respond",
    "Middleware",
    "MiddlewareChain",
    "with_middleware",
    "AccessLog",
    "RequestLog",
    "request_logger",
]
