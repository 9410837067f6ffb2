"""IEventStore protocol + StoredEvent dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable
from uuid import uuid4


@dataclass(frozen=True)
class StoredEvent:
    """Persistent representation of a domain event.

    - ``version``: sequence number inside the aggregate's stream (1, 2, 3...).
    - ``position``: global append order across all streams.
    """

    event_id: str = field(default_factory=lambda: str(uuid4()))
    event_type: str = ""
    aggregate_id: str = ""
    aggregate_type: str = ""
    version: int = 0
    payload: dict[str, object] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None
    causation_id: str | None = None
    position: int | None = None


@runtime_checkable
class IEventStore(Protocol):
    """Append-only event streams keyed by ``(aggregate_type, aggregate_id)``."""

    async def append(
        self,
        aggregate_type: str,
        aggregate_id: str,
        events: list[StoredEvent],
        *,
        expected_version: int,
    ) -> None:
        """Append *events* atomically if the stream is at *expected_version*.

        ``expected_version == 0`` is a conditional create and raises
        ``StreamAlreadyExistsError`` when the stream already has events. Any
        other mismatch raises ``OptimisticConcurrencyError``.
        """
        ...

    async def get_events(
        self,
        aggregate_type: str,
        aggregate_id: str,
        *,
        after_version: int = 0,
    ) -> list[StoredEvent]:
        """Return the stream's events after *after_version*, in order."""
        ...

    async def stream_version(self, aggregate_type: str, aggregate_id: str) -> int:
        """Return the version of the last event in the stream (0 if none)."""
        ...

    async def get_all(self) -> list[StoredEvent]:
        """Return every stored event in append order."""
        ...
