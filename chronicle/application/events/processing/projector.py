"""Projectors keep read models up to date with committed events.

This module provides the read side of CQRS:
- Projector: Base class for consuming events and maintaining read models
"""

import inspect
import json
from typing import TYPE_CHECKING, Any, ClassVar

from ....domain import DomainEvent, EventPayload
from ....domain.exceptions import EventDeserializationError
from ....routing import setup_event_handling
from ..registry import decode_payload

if TYPE_CHECKING:
    from ....routing import MessageRouter


class Projector:
    """Base class for building read models from events (CQRS read side).

    Subclass Projector and use the @handles_event decorator to declare which
    event payloads the projector is interested in. Annotate the handler's
    parameter with the payload type to receive the payload, or with
    ``DomainEvent[T]`` to receive the full envelope. Events without a handler
    are ignored.

    Projectors registered with ``EventBus.register`` are subscribed to
    exactly the payload types they handle.

    Attributes:
        _event_router: Class-level routing table (set by __init_subclass__)

    Example:
        >>> class EditGrantProjector(Projector):
        ...     def __init__(self, read_model: EditGrantReadModel):
        ...         self.read_model = read_model
        ...
        ...     @handles_event
        ...     async def on_revoked(self, event: EditGrantRevoked) -> None:
        ...         await self.read_model.update_status(event.id, "revoked", event.revoked_at)
    """

    _event_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._event_router = setup_event_handling(cls)

    @classmethod
    def handled_event_types(cls) -> tuple[type[EventPayload], ...]:
        """Payload types this projector has a handler for."""
        router = getattr(cls, "_event_router", None)
        if router is None:
            return ()
        return tuple(t for t in router.registered_types if issubclass(t, EventPayload))

    async def handle(self, event: DomainEvent[Any]) -> None:
        """Route an event to its registered handler method.

        Async handlers are awaited. Unknown payload types are a no-op.
        """
        result = self._event_router.route(self, event.data, event_wrapper=event)
        if inspect.isawaitable(result):
            await result

    async def project_event(
        self,
        event_type: str,
        raw_payload: bytes,
        aggregate_id: str = "",
    ) -> None:
        """Project an event given only its discriminant and JSON payload.

        Used to rebuild a read model from stored rows. The payload is decoded
        against the projector's own handled types; discriminants it does not
        handle are a no-op. Handlers annotated with ``DomainEvent[T]`` get an
        envelope with no stream position (sequence_number 0).

        Raises:
            EventDeserializationError: If the payload cannot be decoded.
        """
        payload_type = self._payload_types().get(event_type)
        if payload_type is None:
            return
        payload = decode_payload(payload_type, raw_payload)
        await self.handle(DomainEvent(aggregate_id=aggregate_id, sequence_number=0, data=payload))

    @classmethod
    def _payload_types(cls) -> dict[str, type[EventPayload]]:
        return {t.event_type: t for t in cls.handled_event_types()}


def load_raw_payload(event_type: str, raw_payload: bytes) -> dict[str, Any]:
    """Parse a raw JSON payload for projectors that work on untyped event data.

    Raises:
        EventDeserializationError: If the payload is not a JSON object.
    """
    try:
        data = json.loads(raw_payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EventDeserializationError(event_type, str(e)) from e
    if not isinstance(data, dict):
        raise EventDeserializationError(event_type, "payload is not a JSON object")
    return data
