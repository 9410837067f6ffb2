"""Domain Event base class and the type registry used for rehydration."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel):
    """Base class for all events: immutable facts carrying tracing context.

    ``aggregate_id`` and ``aggregate_type`` are stamped by the recording
    aggregate; integration events leave them unset.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    aggregate_id: str | None = None
    aggregate_type: str | None = None
    correlation_id: str | None = None
    causation_id: str | None = None


def enrich_event_metadata(
    event: DomainEvent,
    *,
    correlation_id: str | None = None,
    causation_id: str | None = None,
) -> DomainEvent:
    """Return a copy of *event* with tracing IDs injected.

    If the event already carries the requested ID the original value is kept.
    """
    updates: dict[str, str] = {}
    if correlation_id and not event.correlation_id:
        updates["correlation_id"] = correlation_id
    if causation_id and not event.causation_id:
        updates["causation_id"] = causation_id

    if not updates:
        return event

    return event.model_copy(update=updates)


class EventTypeRegistry:
    """Maps ``event_type`` names to their classes.

    Used to reconstruct domain events from stored payloads. Create one per
    application context::

        registry = EventTypeRegistry()
        registry.register_all(OrderPlaced, MarkedAsBooked)
        event = registry.hydrate("OrderPlaced", payload)
    """

    def __init__(self) -> None:
        self._registry: dict[str, type[DomainEvent]] = {}

    def register(self, name: str, event_class: type[DomainEvent]) -> None:
        """Register an event class under *name*."""
        self._registry[name] = event_class

    def register_all(self, *event_classes: type[DomainEvent]) -> None:
        """Register each class under its own ``__name__``."""
        for event_class in event_classes:
            self.register(event_class.__name__, event_class)

    def get(self, event_type: str) -> type[DomainEvent] | None:
        return self._registry.get(event_type)

    def has(self, event_type: str) -> bool:
        return event_type in self._registry

    def hydrate(self, event_type: str, data: dict[str, Any]) -> DomainEvent | None:
        """Reconstruct a domain event from its type name and payload dict.

        Returns ``None`` if the event type is not registered. Payloads that
        fail validation raise ``pydantic.ValidationError``.
        """
        event_class = self.get(event_type)
        if event_class is None:
            return None
        return event_class.model_validate(data)

    def list_registered(self) -> list[str]:
        return list(self._registry.keys())
