"""Application wiring for chronicle.

This package contains the infrastructure for building event-sourced
applications: command handling, event storage and delivery, repositories,
middleware, error classification and application lifecycle management.
"""

from .aggregates import EventSourcedRepository
from .application import Application, ApplicationBuilder, HasLifecycle
from .commands import CommandBus, CommandHandler, DuplicateHandlerError
from .errors import ErrorCategory, ErrorMapping, ErrorRegistry
from .events import (
    EventBus,
    EventRegistry,
    EventStore,
    InMemoryEventStore,
    Projector,
    StoredEvent,
)
from .middleware import (
    ConcurrencyRetryMiddleware,
    ContextPropagationMiddleware,
    Handler,
    LoggingMiddleware,
    Middleware,
)

__all__ = [
    # Application
    "Application",
    "ApplicationBuilder",
    "HasLifecycle",
    # Write side
    "CommandBus",
    "CommandHandler",
    "DuplicateHandlerError",
    "EventSourcedRepository",
    # Events
    "EventBus",
    "EventRegistry",
    "EventStore",
    "InMemoryEventStore",
    "Projector",
    "StoredEvent",
    # Errors
    "ErrorCategory",
    "ErrorMapping",
    "ErrorRegistry",
    # Middleware
    "ConcurrencyRetryMiddleware",
    "ContextPropagationMiddleware",
    "Handler",
    "LoggingMiddleware",
    "Middleware",
]
