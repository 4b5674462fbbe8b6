from collections import defaultdict
from dataclasses import replace
from typing import Any

from ...context import ExecutionContext, get_context, use_context
from ...domain import DomainEvent, EventPayload
from .processing import Projector


class EventBus:
    """In-process fan-out of committed events to projectors.

    Delivery is synchronous and ordered: events are delivered in commit
    order, and for each event the projectors subscribed to its discriminant
    run in registration order, followed by the wildcard subscribers. A
    projector error propagates out of ``publish`` and stops the loop; the
    event store logs it and keeps the commit.

    Delivery is not durable. Events published while a projector is failing
    are not redelivered; rebuild the read model from the store instead.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Projector]] = defaultdict(list)
        self._wildcard: list[Projector] = []

    def subscribe(self, event_type: str | type[EventPayload], projector: Projector) -> None:
        """Subscribe a projector to one event discriminant."""
        if isinstance(event_type, type):
            event_type = event_type.event_type
        self._subscribers[event_type].append(projector)

    def subscribe_all(self, projector: Projector) -> None:
        """Subscribe a projector to every event."""
        self._wildcard.append(projector)

    def register(self, projector: Projector) -> None:
        """Subscribe a projector to each payload type it has a handler for."""
        for payload_type in projector.handled_event_types():
            self.subscribe(payload_type, projector)

    def subscribers_for(self, event_type: str) -> list[Projector]:
        return [*self._subscribers.get(event_type, ()), *self._wildcard]

    async def publish(self, event: DomainEvent[Any]) -> None:
        """Deliver one event to its subscribers.

        Projectors run under an execution context caused by the event, so
        commands they dispatch keep the originating correlation id.
        """
        with use_context(self._context_for(event)):
            for projector in self.subscribers_for(event.event_type):
                await projector.handle(event)

    async def publish_all(self, events: list[DomainEvent[Any]]) -> None:
        for event in events:
            await self.publish(event)

    @staticmethod
    def _context_for(event: DomainEvent[Any]) -> ExecutionContext:
        ctx = get_context().for_event(event.id)
        if event.correlation_id is not None:
            ctx = replace(ctx, correlation_id=event.correlation_id)
        return ctx
