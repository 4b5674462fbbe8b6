"""Chronicle - event-sourced aggregate persistence and dispatch for Python.

This module provides the public API for building event-sourced applications.
"""

from .application import Application, ApplicationBuilder
from .domain import AggregateRoot, Command, CommandResult, DomainEvent, EventPayload
from .routing import applies_event, handles_event, intercepts

__all__ = [
    # Application
    "Application",
    "ApplicationBuilder",
    # Domain primitives
    "AggregateRoot",
    "Command",
    "CommandResult",
    "DomainEvent",
    "EventPayload",
    # Decorators
    "applies_event",
    "handles_event",
    "intercepts",
]
