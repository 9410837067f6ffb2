"""ICommandBus — what sagas and schedulers send commands through."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..cqrs.command import Command
    from ..cqrs.response import CommandResponse


@runtime_checkable
class ICommandBus(Protocol):
    async def send(self, command: Command) -> CommandResponse:
        """Dispatch a command to its handler."""
        ...
