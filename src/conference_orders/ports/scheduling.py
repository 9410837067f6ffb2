"""ICommandScheduler — delayed command delivery."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from ..cqrs.command import Command


@runtime_checkable
class ICommandScheduler(Protocol):
    """
    Holds commands until they are due.

    Delivery is at-least-once and never earlier than ``execute_at``.
    Cancellation is best-effort: a command may already be in flight when
    :meth:`cancel` runs.
    """

    async def schedule(
        self,
        command: Command,
        execute_at: datetime,
        description: str | None = None,
    ) -> str:
        """Schedule *command* and return a cancellation token."""
        ...

    async def cancel(self, schedule_id: str) -> bool:
        """Cancel a scheduled command. Returns ``False`` if it is unknown."""
        ...

    async def get_due_commands(
        self, now: datetime | None = None
    ) -> list[tuple[str, Command]]:
        """Return ``(schedule_id, command)`` pairs due at *now*."""
        ...

    async def delete_executed(self, schedule_id: str) -> None:
        """Forget a command after it was delivered."""
        ...
