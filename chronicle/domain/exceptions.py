"""Exceptions raised by the event-sourcing core and by bounded contexts."""


class ChronicleError(Exception):
    """Base class for every error raised by chronicle."""


class ConcurrencyError(ChronicleError):
    """Raised when an optimistic concurrency check fails.

    This exception indicates that another writer appended to the aggregate's
    stream between when it was loaded and when changes were saved. Nothing
    from the rejected batch was persisted.
    """

    def __init__(self, aggregate_id: str, expected_version: int, actual_version: int):
        self.aggregate_id = aggregate_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrency conflict on {aggregate_id}: "
            f"expected version {expected_version}, got {actual_version}"
        )


class AggregateNotFoundError(ChronicleError):
    """Raised when an aggregate has no stored events.

    Bounded contexts subclass this to give callers a type to catch, for
    example ``EditGrantNotFoundError``.
    """

    def __init__(self, aggregate_id: str):
        self.aggregate_id = aggregate_id
        super().__init__(f"{self.describe()} {aggregate_id} not found")

    @classmethod
    def describe(cls) -> str:
        name = cls.__name__.removesuffix("Error").removesuffix("NotFound")
        return name or "Aggregate"


class InvalidCommandError(ChronicleError):
    """Raised when a command is malformed or reaches the wrong handler."""


class UnknownCommandError(InvalidCommandError):
    """Raised when no handler is registered for a command name."""

    def __init__(self, command_name: str):
        self.command_name = command_name
        super().__init__(f"No handler registered for command {command_name}")


class EventDeserializationError(ChronicleError):
    """Raised when a stored event cannot be turned back into a typed payload."""

    def __init__(self, event_type: str, reason: str):
        self.event_type = event_type
        self.reason = reason
        super().__init__(f"Cannot deserialize event {event_type}: {reason}")


class DomainValidationError(ChronicleError, ValueError):
    """Raised by value objects when their input is invalid."""


class DomainError(ChronicleError):
    """Base for business rule violations raised by aggregates."""
