from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar
from uuid import uuid4

from pydantic import BaseModel, Field
from typing_extensions import Self

from ..context import get_context
from ..routing import setup_event_applying
from .event import DomainEvent, EventPayload

if TYPE_CHECKING:
    from ..routing import MessageRouter


T = TypeVar("T", bound=EventPayload)


def new_aggregate_id() -> str:
    return str(uuid4())


class AggregateRoot(BaseModel):
    """Base class for all event-sourced aggregates.

    Aggregates are the consistency boundary of the write side. Their state is
    never assigned directly by callers: domain methods validate a request,
    then call ``raise_event`` with a payload, and the payload is applied to
    the state through the ``@applies_event`` method registered for its type.
    The same appliers rebuild the state when the aggregate is loaded from its
    history, so replaying the stream always yields the same state.

    Examples:
        >>> class GrantRevoked(EventPayload):
        ...     revoked_by: str
        >>>
        >>> class Grant(AggregateRoot):
        ...     revoked: bool = False
        ...
        ...     def revoke(self, by: str) -> None:
        ...         if self.revoked:
        ...             raise GrantAlreadyRevokedError(self.id)
        ...         self.raise_event(GrantRevoked(revoked_by=by))
        ...
        ...     @applies_event
        ...     def apply_revoked(self, evt: GrantRevoked) -> None:
        ...         self.revoked = True

    Attributes:
        id: Unique identifier for this aggregate instance. A UUID string is
            generated if not provided.
        version: Number of events applied, committed plus pending.
        uncommitted_events: Events raised but not yet persisted. Excluded
            from serialization.
    """

    id: str = Field(default_factory=new_aggregate_id)
    version: int = 0
    uncommitted_events: list[DomainEvent[Any]] = Field(default_factory=list, exclude=True)

    _event_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)  # type: ignore[arg-type]
        cls._event_router = setup_event_applying(cls)

    @classmethod
    def load_from_history(cls, events: Iterable[DomainEvent[Any]]) -> Self:
        """Rebuild an aggregate by replaying its committed events in order.

        The id is taken from the first event. An empty history yields a
        fresh aggregate at version 0; the repository, not this method,
        decides whether that means "not found".
        """
        aggregate = cls()
        for index, event in enumerate(events):
            if index == 0:
                aggregate.id = event.aggregate_id
            aggregate.apply(event.data, event)
            aggregate.version += 1
        return aggregate

    @property
    def committed_version(self) -> int:
        """The stream length this aggregate was loaded at (the concurrency token)."""
        return self.version - len(self.uncommitted_events)

    def apply(self, payload: EventPayload, event: DomainEvent[Any] | None = None) -> object:
        """Route a payload to its registered applier method.

        Payload types without an applier are ignored.

        Args:
            payload: The event payload to apply to the aggregate state.
            event: The enclosing DomainEvent, handed to appliers annotated
                with ``DomainEvent[T]``.
        """
        return self._event_router.route(self, payload, event_wrapper=event)

    def raise_event(self, payload: T) -> DomainEvent[T]:
        """Record a new event and apply it to the aggregate state.

        Increments the version, wraps the payload with the correlation id
        and the causing command id from the current execution context,
        appends it to the pending events and applies it.
        """
        self.version += 1
        ctx = get_context()

        event: DomainEvent[T] = DomainEvent(
            aggregate_id=self.id,
            sequence_number=self.version,
            data=payload,
            correlation_id=ctx.correlation_id,
            causation_id=ctx.command_id,
        )
        self.uncommitted_events.append(event)
        self.apply(payload, event)
        return event

    def changed_since(self, version: int) -> bool:
        return self.version > version

    def get_uncommitted_changes(self) -> list[DomainEvent[Any]]:
        """Pending events in the order they were raised."""
        return list(self.uncommitted_events)

    def mark_changes_as_committed(self) -> None:
        self.uncommitted_events.clear()
