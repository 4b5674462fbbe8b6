from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ...domain import AggregateRoot, DomainEvent
from ...domain.exceptions import AggregateNotFoundError

if TYPE_CHECKING:
    from ..events import EventRegistry, EventStore

A = TypeVar("A", bound=AggregateRoot)

NotFoundFactory = Callable[[str], Exception]
Rehydrator = Callable[[list[DomainEvent[Any]]], A]


class EventSourcedRepository(Generic[A]):
    """Loads and saves one aggregate type through an event store.

    The repository holds no state between calls. Loading reads the stream,
    decodes every stored event through the registry and replays it; saving
    appends the aggregate's pending events with its committed version as the
    expected version. Concurrency errors are never retried here.

    Build one per aggregate type with ``for_aggregate``:

        >>> grants = EventSourcedRepository.for_aggregate(
        ...     EditGrant, store, registry, not_found=EditGrantNotFoundError
        ... )
        >>> grant = await grants.get_by_id(grant_id)
        >>> grant.revoke("user-1")
        >>> await grants.save(grant)
    """

    __slots__ = ("aggregate_type", "store", "registry", "rehydrate", "not_found")

    def __init__(
        self,
        aggregate_type: type[A],
        store: "EventStore",
        registry: "EventRegistry",
        rehydrate: Rehydrator[A],
        not_found: NotFoundFactory,
    ):
        self.aggregate_type = aggregate_type
        self.store = store
        self.registry = registry
        self.rehydrate = rehydrate
        self.not_found = not_found

    @classmethod
    def for_aggregate(
        cls,
        aggregate_type: type[A],
        store: "EventStore",
        registry: "EventRegistry",
        not_found: NotFoundFactory = AggregateNotFoundError,
    ) -> "EventSourcedRepository[A]":
        return cls(
            aggregate_type,
            store,
            registry,
            rehydrate=aggregate_type.load_from_history,
            not_found=not_found,
        )

    async def get_by_id(self, aggregate_id: str) -> A:
        """Load an aggregate by replaying its stream.

        Raises:
            The configured not-found error if the stream is empty.
            EventDeserializationError: If a stored event cannot be decoded.
        """
        stored = await self.store.read(aggregate_id)
        if not stored:
            raise self.not_found(aggregate_id)

        events = [self.registry.to_domain_event(record) for record in stored]
        return self.rehydrate(events)

    async def save(self, aggregate: A) -> None:
        """Append the aggregate's pending events and mark them committed.

        The events are marked committed as soon as the store has persisted
        them, before they are published, so an aggregate never keeps pending
        events that are already stored. On ConcurrencyError the pending
        events stay on the aggregate and the error propagates unchanged.
        """
        if not (pending := aggregate.get_uncommitted_changes()):
            return

        committed = await self.store.commit(aggregate.id, pending, aggregate.committed_version)
        aggregate.mark_changes_as_committed()
        await self.store.publish_committed(aggregate.id, committed)

    @asynccontextmanager
    async def acquire(self, aggregate_id: str) -> AsyncIterator[A]:
        """Load an aggregate, yield it, and save it if the block changed it."""
        aggregate = await self.get_by_id(aggregate_id)
        original_version = aggregate.version

        try:
            yield aggregate
        except Exception:
            # Discard events raised by the failed block so none get saved
            aggregate.mark_changes_as_committed()
            raise

        if aggregate.changed_since(original_version):
            await self.save(aggregate)
