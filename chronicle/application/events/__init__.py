"""Event sourcing infrastructure for chronicle.

This package provides the core event sourcing components:
- EventStore: Durable, append-only event persistence
- EventRegistry: Decodes stored events back into typed payloads
- EventBus: In-process delivery of committed events to projectors
- Projector: Process events and maintain read models
"""

from .bus import EventBus
from .processing import Projector, load_raw_payload
from .registry import EventRegistry, decode_payload
from .store import EventPublisher, EventStore, InMemoryEventStore, StoredEvent

__all__ = [
    "EventBus",
    "EventPublisher",
    "EventRegistry",
    "EventStore",
    "InMemoryEventStore",
    "StoredEvent",
    "Projector",
    "decode_payload",
    "load_raw_payload",
]
