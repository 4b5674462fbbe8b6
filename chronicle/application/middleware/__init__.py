"""Middleware infrastructure for commands.

Middleware components wrap the command handler to provide cross-cutting
concerns. They follow the chain of responsibility pattern.
"""

from .base import Handler, Middleware
from .concurrency import ConcurrencyRetryMiddleware
from .context import ContextPropagationMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "Handler",
    "Middleware",
    "ConcurrencyRetryMiddleware",
    "ContextPropagationMiddleware",
    "LoggingMiddleware",
]
