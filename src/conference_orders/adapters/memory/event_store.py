"""InMemoryEventStore — dict-of-streams fake for tests and single processes."""

from __future__ import annotations

import dataclasses
import logging

from ...ports.event_store import IEventStore, StoredEvent
from ...primitives.exceptions import (
    OptimisticConcurrencyError,
    StreamAlreadyExistsError,
)

logger = logging.getLogger("conference_orders.persistence")


class InMemoryEventStore(IEventStore):
    """In-memory implementation of ``IEventStore``.

    ``append`` performs its version check and write without awaiting, so
    concurrent coroutines on one event loop cannot interleave inside it.
    """

    def __init__(self) -> None:
        self._streams: dict[tuple[str, str], list[StoredEvent]] = {}
        self._log: list[StoredEvent] = []

    async def append(
        self,
        aggregate_type: str,
        aggregate_id: str,
        events: list[StoredEvent],
        *,
        expected_version: int,
    ) -> None:
        key = (aggregate_type, aggregate_id)
        stream = self._streams.get(key, [])
        current = len(stream)
        if current != expected_version:
            if expected_version == 0:
                raise StreamAlreadyExistsError(f"{aggregate_type}-{aggregate_id}")
            raise OptimisticConcurrencyError(
                f"{aggregate_type}-{aggregate_id}", expected_version, current
            )
        if not events:
            return

        appended: list[StoredEvent] = []
        for offset, event in enumerate(events, start=1):
            appended.append(
                dataclasses.replace(
                    event,
                    version=current + offset,
                    position=len(self._log) + offset - 1,
                )
            )
        self._streams[key] = [*stream, *appended]
        self._log.extend(appended)
        logger.debug(
            "Appended %d event(s) to %s-%s (version %d)",
            len(appended),
            aggregate_type,
            aggregate_id,
            current + len(appended),
        )

    async def get_events(
        self,
        aggregate_type: str,
        aggregate_id: str,
        *,
        after_version: int = 0,
    ) -> list[StoredEvent]:
        stream = self._streams.get((aggregate_type, aggregate_id), [])
        return [e for e in stream if e.version > after_version]

    async def stream_version(self, aggregate_type: str, aggregate_id: str) -> int:
        return len(self._streams.get((aggregate_type, aggregate_id), []))

    async def get_all(self) -> list[StoredEvent]:
        return list(self._log)

    # --- Test helpers ---

    def clear(self) -> None:
        self._streams.clear()
        self._log.clear()

    def __len__(self) -> int:
        return len(self._log)
