"""In-memory command scheduler."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...ports.scheduling import ICommandScheduler

if TYPE_CHECKING:
    from ...cqrs.command import Command


@dataclass(frozen=True)
class ScheduledCommand:
    """A command waiting for its due time.

    ``order_id`` is copied from order commands so pending timers can be
    looked up per order.
    """

    schedule_id: str
    command: Command
    execute_at: datetime
    order_id: str | None = None
    description: str | None = None


class InMemoryCommandScheduler(ICommandScheduler):
    """
    :class:`ICommandScheduler` holding timers in process memory.

    Timers do not survive a restart. Naive ``execute_at`` values are read as
    UTC, and due commands come back earliest first.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ScheduledCommand] = {}

    async def schedule(
        self,
        command: Command,
        execute_at: datetime,
        description: str | None = None,
    ) -> str:
        if execute_at.tzinfo is None:
            execute_at = execute_at.replace(tzinfo=timezone.utc)
        entry = ScheduledCommand(
            schedule_id=str(uuid.uuid4()),
            command=command,
            execute_at=execute_at,
            order_id=getattr(command, "order_id", None),
            description=description,
        )
        self._entries[entry.schedule_id] = entry
        return entry.schedule_id

    async def get_due_commands(
        self, now: datetime | None = None
    ) -> list[tuple[str, Command]]:
        cutoff = now or datetime.now(timezone.utc)
        due = sorted(
            (e for e in self._entries.values() if e.execute_at <= cutoff),
            key=lambda e: e.execute_at,
        )
        return [(e.schedule_id, e.command) for e in due]

    async def cancel(self, schedule_id: str) -> bool:
        return self._entries.pop(schedule_id, None) is not None

    async def delete_executed(self, schedule_id: str) -> None:
        self._entries.pop(schedule_id, None)

    # --- Inspection ---

    def scheduled_for(self, order_id: str) -> list[ScheduledCommand]:
        """Pending timers of one order, earliest first."""
        return sorted(
            (e for e in self._entries.values() if e.order_id == order_id),
            key=lambda e: e.execute_at,
        )

    def execute_at(self, schedule_id: str) -> datetime | None:
        entry = self._entries.get(schedule_id)
        return entry.execute_at if entry else None

    @property
    def scheduled_count(self) -> int:
        return len(self._entries)
