"""Registry mapping persisted event discriminants to payload classes."""

import json
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ...domain import DomainEvent, EventPayload
from ...domain.exceptions import EventDeserializationError

if TYPE_CHECKING:
    from .store import StoredEvent

RawPayload = Mapping[str, Any] | bytes | str


def decode_payload(payload_type: type[EventPayload], raw: RawPayload) -> EventPayload:
    """Validate raw event data into ``payload_type``.

    Raises:
        EventDeserializationError: If the data is not valid JSON or does not
            match the payload schema.
    """
    try:
        if isinstance(raw, (bytes, str)):
            return payload_type.model_validate_json(raw)
        return payload_type.model_validate(raw)
    except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EventDeserializationError(payload_type.event_type, str(e)) from e


class EventRegistry:
    """Registry of the event variants an application can decode.

    Maps each variant's ``event_type`` discriminant to its payload class so
    that stored events can be turned back into typed payloads when an
    aggregate is loaded.

    Examples:
        >>> registry = EventRegistry()
        >>> registry.register(EditGrantActivated, EditGrantRevoked)
        >>> registry.decode("EditGrantRevoked", {"id": "g1", "revokedBy": "u1", ...})
    """

    def __init__(self, payload_types: Iterable[type[EventPayload]] = ()):
        self._types: dict[str, type[EventPayload]] = {}
        self.register(*payload_types)

    def register(self, *payload_types: type[EventPayload]) -> None:
        """Register payload classes under their ``event_type``.

        Raises:
            ValueError: If another class is already registered under the
                same discriminant.
        """
        for payload_type in payload_types:
            existing = self._types.get(payload_type.event_type)
            if existing is not None and existing is not payload_type:
                raise ValueError(
                    f"Event type {payload_type.event_type} is already registered "
                    f"to {existing.__qualname__}"
                )
            self._types[payload_type.event_type] = payload_type

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._types

    def event_types(self) -> list[str]:
        return list(self._types)

    def payload_type(self, event_type: str) -> type[EventPayload]:
        try:
            return self._types[event_type]
        except KeyError:
            raise EventDeserializationError(event_type, "unknown event type") from None

    def decode(self, event_type: str, raw: RawPayload) -> EventPayload:
        return decode_payload(self.payload_type(event_type), raw)

    def to_domain_event(self, stored: "StoredEvent") -> DomainEvent[Any]:
        """Rebuild the typed event envelope from a stored event."""
        return DomainEvent(
            id=stored.event_id,
            aggregate_id=stored.aggregate_id,
            sequence_number=stored.sequence_number,
            data=self.decode(stored.event_type, stored.payload),
            occurred_at=stored.occurred_at,
            correlation_id=stored.correlation_id,
            causation_id=stored.causation_id,
        )
