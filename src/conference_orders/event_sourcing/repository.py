"""EventSourcedRepository — load and persist event-sourced aggregates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Generic, TypeVar

from ..correlation import get_correlation_id
from ..domain.aggregate import EventSourcedAggregate
from ..domain.events import enrich_event_metadata
from ..ports.event_store import StoredEvent
from ..primitives.exceptions import PersistenceError

if TYPE_CHECKING:
    from ..domain.events import DomainEvent, EventTypeRegistry
    from ..ports.event_store import IEventStore

T = TypeVar("T", bound=EventSourcedAggregate)

logger = logging.getLogger("conference_orders.persistence")


class EventSourcedRepository(Generic[T]):
    """Repository for one event-sourced aggregate type.

    - **get:** replays the stored stream; ``None`` when it is empty.
    - **save:** appends the uncommitted events with the stream version the
      aggregate was loaded at as ``expected_version``. For a brand-new
      aggregate that version is 0, which makes the append a conditional
      create that fails with ``StreamAlreadyExistsError`` if the id is taken.
    """

    def __init__(
        self,
        aggregate_cls: type[T],
        event_store: IEventStore,
        event_registry: EventTypeRegistry,
    ) -> None:
        self._aggregate_cls = aggregate_cls
        self._event_store = event_store
        self._event_registry = event_registry
        self._aggregate_type = aggregate_cls.aggregate_type

    async def get(self, aggregate_id: str) -> T | None:
        stored = await self._event_store.get_events(self._aggregate_type, aggregate_id)
        if not stored:
            return None
        return self._aggregate_cls.from_history(
            aggregate_id, [self._to_event(s) for s in stored]
        )

    async def exists(self, aggregate_id: str) -> bool:
        version = await self._event_store.stream_version(
            self._aggregate_type, aggregate_id
        )
        return version > 0

    async def save(self, aggregate: T) -> list[DomainEvent]:
        """Persist uncommitted events and return them; the buffer is cleared."""
        correlation_id = get_correlation_id()
        events = [
            enrich_event_metadata(e, correlation_id=correlation_id)
            for e in aggregate.uncommitted_events
        ]
        if not events:
            return []
        expected_version = aggregate.persisted_version
        await self._event_store.append(
            self._aggregate_type,
            aggregate.id,
            [self._to_stored(e) for e in events],
            expected_version=expected_version,
        )
        aggregate.pop_recorded_events()
        logger.debug(
            "Saved %s %s at version %d",
            self._aggregate_type,
            aggregate.id,
            aggregate.version,
        )
        return events

    def _to_stored(self, event: DomainEvent) -> StoredEvent:
        return StoredEvent(
            event_id=event.event_id,
            event_type=type(event).__name__,
            aggregate_id=event.aggregate_id or "",
            aggregate_type=event.aggregate_type or self._aggregate_type,
            payload=event.model_dump(mode="json"),
            occurred_at=event.occurred_at,
            correlation_id=event.correlation_id,
            causation_id=event.causation_id,
        )

    def _to_event(self, stored: StoredEvent) -> DomainEvent:
        event = self._event_registry.hydrate(stored.event_type, dict(stored.payload))
        if event is None:
            raise PersistenceError(
                f"Unknown event type {stored.event_type!r} in stream "
                f"{stored.aggregate_type}-{stored.aggregate_id}"
            )
        return event
