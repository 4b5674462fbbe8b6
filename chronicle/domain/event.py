from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from ulid import ULID


def utc_now() -> datetime:
    """Get the current UTC timestamp.

    Returns:
        Current datetime with UTC timezone information

    Note:
        Used as default_factory for DomainEvent.occurred_at so that all
        events are timestamped in UTC regardless of system timezone.
    """
    return datetime.now(tz=timezone.utc)


class EventPayload(BaseModel):
    """Base class for the data of one event variant.

    Each subclass is one variant of the closed set of facts an aggregate can
    record. The variant's discriminant is ``event_type``, which defaults to
    the class name and is the string persisted next to the payload. Payloads
    are frozen: an event, once raised, never changes.

    Examples:
        >>> class EditGrantRevoked(EventPayload):
        ...     id: str
        ...     revoked_by: str
        >>>
        >>> EditGrantRevoked.event_type
        'EditGrantRevoked'
        >>> EditGrantRevoked(id="g1", revoked_by="u1").event_data()
        {'id': 'g1', 'revokedBy': 'u1'}
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    event_type: ClassVar[str] = "EventPayload"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "event_type" not in cls.__dict__:
            cls.event_type = cls.__name__

    def event_data(self) -> dict[str, Any]:
        """Serialization-stable projection of the payload (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


T = TypeVar("T", bound=EventPayload)


class DomainEvent(BaseModel, Generic[T]):
    """Immutable record of a state change in an aggregate.

    DomainEvent wraps a typed payload with the metadata needed to store,
    order and trace it. Events are:

    - **Immutable**: once created, events cannot be modified
    - **Ordered**: sequence numbers are 1-indexed positions in the stream
    - **Traceable**: correlation/causation ids come from the execution context

    Type Parameters:
        T: EventPayload subclass defining the event data schema

    Note:
        Events are created by aggregates via ``raise_event()``, not
        constructed directly. The event store assigns the final
        sequence_number when it appends.
    """

    model_config = ConfigDict(frozen=True)

    id: ULID = Field(
        default_factory=ULID,
        description="Unique identifier for this event instance",
    )
    aggregate_id: str = Field(description="ID of the aggregate that produced this event")
    data: T = Field(description="Typed event payload")
    sequence_number: int = Field(
        description="Position in aggregate's event stream (1-indexed, monotonically increasing)"
    )
    occurred_at: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC timezone)",
    )
    correlation_id: ULID | None = Field(
        default=None,
        description="Correlation ID for tracing the entire logical operation",
    )
    causation_id: ULID | None = Field(
        default=None,
        description="ID of what directly caused this event (typically the command_id)",
    )

    @property
    def event_type(self) -> str:
        return self.data.event_type

    def event_data(self) -> dict[str, Any]:
        return self.data.event_data()
