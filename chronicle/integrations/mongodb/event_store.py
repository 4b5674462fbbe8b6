"""MongoDB implementation of EventStore.

Events live in one collection, one document per event, with a unique index
on (tenant_id, aggregate_id, sequence_number). The index is what makes concurrent
appends safe: two writers that both passed the length check race on the
same first position and exactly one insert wins.
"""

from typing import Any

from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import BulkWriteError, DuplicateKeyError
from ulid import ULID

from ...application.events import EventPublisher, EventStore, StoredEvent
from ...domain import DomainEvent
from ...domain.exceptions import ConcurrencyError

DUPLICATE_KEY = 11000


class MongoEventStore(EventStore):
    """MongoDB implementation of the EventStore interface.

    Appends check the stored stream length, then insert the batch with an
    ordered ``insert_many``. Positions are contiguous, so a racing writer
    always collides on the first document of the batch and the ordered
    insert stops before writing anything.

    Examples:
        >>> config = MongoConfiguration()
        >>> store = MongoEventStore(config.events)
        >>> await store.initialize_schema()
        >>> await store.append(grant_id, grant.get_uncommitted_changes(), 0)
        >>> stored = await store.read(grant_id)
    """

    def __init__(
        self,
        collection: AsyncCollection[dict[str, Any]],
        publisher: EventPublisher | None = None,
    ):
        super().__init__(publisher)
        self.collection = collection

    async def initialize_schema(self) -> None:
        """Create the unique per-tenant stream-position index."""
        await self.collection.create_index(
            [
                ("tenant_id", ASCENDING),
                ("aggregate_id", ASCENDING),
                ("sequence_number", ASCENDING),
            ],
            unique=True,
        )

    async def on_startup(self) -> None:
        await self.initialize_schema()

    async def on_shutdown(self) -> None:
        """Nothing to release; the client belongs to MongoConfiguration."""

    async def _commit(
        self,
        tenant_id: str,
        aggregate_id: str,
        events: list[DomainEvent[Any]],
        expected_version: int,
    ) -> None:
        documents = [self._to_document(StoredEvent.from_domain_event(e)) for e in events]

        current_version = await self._stream_length(tenant_id, aggregate_id)
        if current_version != expected_version:
            raise ConcurrencyError(aggregate_id, expected_version, current_version)

        try:
            await self.collection.insert_many(documents, ordered=True)
        except DuplicateKeyError as e:
            raise await self._conflict(tenant_id, aggregate_id, expected_version) from e
        except BulkWriteError as e:
            write_errors = e.details.get("writeErrors", [])
            if any(error.get("code") == DUPLICATE_KEY for error in write_errors):
                raise await self._conflict(tenant_id, aggregate_id, expected_version) from e
            raise

    async def _read(self, tenant_id: str, aggregate_id: str) -> list[StoredEvent]:
        stream = {"tenant_id": tenant_id, "aggregate_id": aggregate_id}
        cursor = self.collection.find(stream).sort("sequence_number", ASCENDING)
        return [self._from_document(doc) async for doc in cursor]

    async def _stream_length(self, tenant_id: str, aggregate_id: str) -> int:
        return await self.collection.count_documents(
            {"tenant_id": tenant_id, "aggregate_id": aggregate_id}
        )

    async def _conflict(
        self, tenant_id: str, aggregate_id: str, expected_version: int
    ) -> ConcurrencyError:
        return ConcurrencyError(
            aggregate_id, expected_version, await self._stream_length(tenant_id, aggregate_id)
        )

    @staticmethod
    def _to_document(event: StoredEvent) -> dict[str, Any]:
        return {
            "_id": str(event.event_id),
            "tenant_id": event.tenant_id,
            "aggregate_id": event.aggregate_id,
            "sequence_number": event.sequence_number,
            "event_type": event.event_type,
            "payload": event.payload,
            "occurred_at": event.occurred_at,
            "correlation_id": str(event.correlation_id) if event.correlation_id else None,
            "causation_id": str(event.causation_id) if event.causation_id else None,
            "actor_id": event.actor_id,
            "actor_email": event.actor_email,
        }

    @staticmethod
    def _from_document(doc: dict[str, Any]) -> StoredEvent:
        return StoredEvent(
            event_id=ULID.from_str(doc["_id"]),
            aggregate_id=doc["aggregate_id"],
            sequence_number=doc["sequence_number"],
            event_type=doc["event_type"],
            payload=doc["payload"],
            occurred_at=doc["occurred_at"],
            correlation_id=(
                ULID.from_str(doc["correlation_id"]) if doc.get("correlation_id") else None
            ),
            causation_id=(
                ULID.from_str(doc["causation_id"]) if doc.get("causation_id") else None
            ),
            actor_id=doc["actor_id"],
            actor_email=doc["actor_email"],
            tenant_id=doc["tenant_id"],
        )
