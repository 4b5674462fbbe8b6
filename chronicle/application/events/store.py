import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID

from ...context import DEFAULT_TENANT_ID, get_context
from ...domain import DomainEvent
from ...domain.exceptions import ConcurrencyError

LOGGER = logging.getLogger(__name__)


class StoredEvent(BaseModel):
    """A persisted event as the store returns it.

    The payload is kept as the plain JSON-safe dict produced by
    ``EventPayload.event_data()``; turning it back into a typed payload is
    the job of the EventRegistry.
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str
    sequence_number: int
    event_type: str
    payload: dict[str, Any]
    occurred_at: datetime
    event_id: ULID = Field(default_factory=ULID)
    correlation_id: ULID | None = None
    causation_id: ULID | None = None
    actor_id: str
    actor_email: str
    tenant_id: str = DEFAULT_TENANT_ID

    def raw_payload(self) -> bytes:
        return json.dumps(self.payload).encode()

    @classmethod
    def from_domain_event(cls, event: DomainEvent[Any]) -> "StoredEvent":
        """Capture an event for storage, recording the acting user and tenant."""
        ctx = get_context()
        actor_id, actor_email = ctx.actor
        return cls(
            aggregate_id=event.aggregate_id,
            sequence_number=event.sequence_number,
            event_type=event.event_type,
            payload=event.event_data(),
            occurred_at=event.occurred_at,
            event_id=event.id,
            correlation_id=event.correlation_id,
            causation_id=event.causation_id,
            actor_id=actor_id,
            actor_email=actor_email,
            tenant_id=ctx.tenant,
        )


class EventPublisher(Protocol):
    async def publish_all(self, events: list[DomainEvent[Any]]) -> None: ...


class EventStore(ABC):
    """Append-only event streams, scoped per tenant and aggregate.

    ``append`` is the single write path. It checks the expected version and
    persists the batch atomically through ``commit``, then hands the
    committed events to the attached publisher. Publication happens after
    the commit: a failing projector is logged and never undoes or fails the
    write.

    Streams belong to the tenant of the current execution context (the
    default tenant when none is set). The same aggregate id in two tenants
    names two independent streams.

    Conflicts are never retried here. Callers decide whether to reload and
    try again (see ConcurrencyRetryMiddleware).
    """

    def __init__(self, publisher: EventPublisher | None = None):
        self.publisher = publisher

    def attach_publisher(self, publisher: EventPublisher | None) -> None:
        self.publisher = publisher

    async def append(
        self,
        aggregate_id: str,
        events: list[DomainEvent[Any]],
        expected_version: int,
    ) -> None:
        """Append events to an aggregate's stream and publish them.

        Args:
            aggregate_id: The stream to append to.
            events: Events in the order they were raised.
            expected_version: The stream length the caller loaded. The k
                events land at positions expected_version + 1 through
                expected_version + k.

        Raises:
            ConcurrencyError: If the stored stream length differs from
                expected_version. Nothing is persisted in that case.
        """
        committed = await self.commit(aggregate_id, events, expected_version)
        await self.publish_committed(aggregate_id, committed)

    async def commit(
        self,
        aggregate_id: str,
        events: list[DomainEvent[Any]],
        expected_version: int,
    ) -> list[DomainEvent[Any]]:
        """Persist events without publishing them.

        Returns the events as stored, with their stream positions, ready to
        be handed to ``publish_committed``.

        Raises:
            ConcurrencyError: If the stored stream length differs from
                expected_version.
        """
        if not events:
            return []

        tenant_id = get_context().tenant
        positioned = [
            event.model_copy(
                update={
                    "aggregate_id": aggregate_id,
                    "sequence_number": expected_version + offset,
                }
            )
            for offset, event in enumerate(events, start=1)
        ]
        await self._commit(tenant_id, aggregate_id, positioned, expected_version)
        LOGGER.debug(
            "Appended events",
            extra={
                "tenant_id": tenant_id,
                "aggregate_id": aggregate_id,
                "count": len(positioned),
                "version": expected_version + len(positioned),
            },
        )
        return positioned

    async def publish_committed(self, aggregate_id: str, events: list[DomainEvent[Any]]) -> None:
        """Hand committed events to the publisher, logging its failures."""
        if self.publisher is None or not events:
            return
        try:
            await self.publisher.publish_all(events)
        except Exception:
            LOGGER.warning(
                "Failed to publish committed events",
                extra={"aggregate_id": aggregate_id},
                exc_info=True,
            )

    async def read(self, aggregate_id: str) -> list[StoredEvent]:
        """All events of an aggregate in stream order, empty if it has none."""
        return await self._read(get_context().tenant, aggregate_id)

    @abstractmethod
    async def _read(self, tenant_id: str, aggregate_id: str) -> list[StoredEvent]: ...

    @abstractmethod
    async def _commit(
        self,
        tenant_id: str,
        aggregate_id: str,
        events: list[DomainEvent[Any]],
        expected_version: int,
    ) -> None:
        """Atomically check the stream length and persist the batch."""
        ...


class InMemoryEventStore(EventStore):
    """EventStore backed by a dict of lists, for tests and development.

    Streams are keyed by ``(tenant_id, aggregate_id)``. The version check
    and the append run with no ``await`` in between, which makes them
    atomic with respect to other tasks on the loop.
    """

    def __init__(self, publisher: EventPublisher | None = None):
        super().__init__(publisher)
        self.events: dict[tuple[str, str], list[StoredEvent]] = {}

    async def _commit(
        self,
        tenant_id: str,
        aggregate_id: str,
        events: list[DomainEvent[Any]],
        expected_version: int,
    ) -> None:
        records = [StoredEvent.from_domain_event(event) for event in events]
        key = (tenant_id, aggregate_id)
        stream = self.events.get(key, [])
        if len(stream) != expected_version:
            raise ConcurrencyError(aggregate_id, expected_version, len(stream))
        self.events.setdefault(key, []).extend(records)

    async def _read(self, tenant_id: str, aggregate_id: str) -> list[StoredEvent]:
        return list(self.events.get((tenant_id, aggregate_id), ()))
