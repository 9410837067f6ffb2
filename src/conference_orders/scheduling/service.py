"""CommandSchedulerService — delivers due scheduled commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..primitives.exceptions import DomainError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from ..cqrs.command import Command
    from ..ports.scheduling import ICommandScheduler

logger = logging.getLogger("conference_orders.scheduling")


class CommandSchedulerService:
    """
    Sends every due command through the mediator.

    A command is removed only after it was handled. Infrastructure failures
    leave it scheduled for the next cycle (at-least-once delivery); a
    :class:`DomainError` will fail the same way every time, so such commands
    are logged and dropped.
    """

    def __init__(
        self,
        scheduler: ICommandScheduler,
        mediator_send_fn: Callable[[Command], Awaitable[Any]],
    ) -> None:
        self._scheduler = scheduler
        self._send_fn = mediator_send_fn

    async def process_due_commands(self, now: datetime | None = None) -> int:
        """Dispatch all commands due at *now*; return how many succeeded."""
        due = await self._scheduler.get_due_commands(now)
        if not due:
            return 0

        count = 0
        for schedule_id, command in due:
            command_name = type(command).__name__
            logger.info(
                "Executing scheduled command %s (ID: %s)", command_name, schedule_id
            )
            try:
                await self._send_fn(command)
            except DomainError:
                logger.exception(
                    "Scheduled command %s (ID: %s) was rejected, dropping it",
                    command_name,
                    schedule_id,
                )
                await self._scheduler.delete_executed(schedule_id)
                continue
            except Exception:
                logger.exception(
                    "Failed to execute scheduled command %s (ID: %s)",
                    command_name,
                    schedule_id,
                )
                continue
            await self._scheduler.delete_executed(schedule_id)
            count += 1

        return count
