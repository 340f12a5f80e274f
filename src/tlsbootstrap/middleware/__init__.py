"""
Request middleware.

    base.py       Middleware ABC + MiddlewarePipeline (chain of responsibility)
    protocol.py   per-request HTTP/TLS version logging
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .protocol import ProtocolLoggingMiddleware, ProtocolLogEntry, log_connection

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "ProtocolLoggingMiddleware",
    "ProtocolLogEntry",
    "log_connection",
]
