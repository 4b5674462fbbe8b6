"""Domain primitives for event sourcing and CQRS.

This module contains the core building blocks that bounded contexts extend
to create their domain models:

- AggregateRoot: Base class for aggregates that raise events
- Command / CommandResult: Write-side messages and their outcome
- EventPayload / DomainEvent: Event variants and their envelope
- The exception taxonomy rooted at ChronicleError
"""

from .aggregate import AggregateRoot
from .command import Command, CommandResult
from .event import DomainEvent, EventPayload, utc_now
from .exceptions import (
    AggregateNotFoundError,
    ChronicleError,
    ConcurrencyError,
    DomainError,
    DomainValidationError,
    EventDeserializationError,
    InvalidCommandError,
    UnknownCommandError,
)

__all__ = [
    "AggregateRoot",
    "Command",
    "CommandResult",
    "DomainEvent",
    "EventPayload",
    "utc_now",
    "ChronicleError",
    "ConcurrencyError",
    "AggregateNotFoundError",
    "InvalidCommandError",
    "UnknownCommandError",
    "EventDeserializationError",
    "DomainValidationError",
    "DomainError",
]
