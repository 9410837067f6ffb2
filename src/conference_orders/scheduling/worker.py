"""CommandSchedulerWorker: keeps order timers and stranded commands moving."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..ports.background_worker import IBackgroundWorker

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from .service import CommandSchedulerService

logger = logging.getLogger("conference_orders.scheduling")


@dataclass(frozen=True)
class CycleReport:
    """Outcome of one worker cycle."""

    delivered: int = 0
    resent: int = 0
    failed_steps: tuple[str, ...] = ()

    @property
    def idle(self) -> bool:
        return not (self.delivered or self.resent or self.failed_steps)


class CommandSchedulerWorker(IBackgroundWorker):
    """
    Background loop behind order expiry and order process recovery.

    Every cycle runs two steps:

    1. deliver scheduled commands that fell due (``ExpireOrder``);
    2. call *recover*, which re-sends commands an order process persisted
       but never managed to dispatch.

    A failing step is logged and does not skip the other one, and the loop
    keeps going. Recovery therefore happens within one ``poll_interval`` of
    a failed send instead of waiting for a restart. Re-sending a command that
    is still in flight elsewhere is harmless: every order command is
    idempotent and runs under its aggregate's lock.
    """

    def __init__(
        self,
        service: CommandSchedulerService,
        *,
        recover: Callable[[], Awaitable[int]] | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._service = service
        self._recover = recover
        self._poll_interval = poll_interval
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        """Run the next cycle now instead of at the end of the interval."""
        self._wakeup.set()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="order-scheduler")
        logger.info(
            "Order scheduler started (poll_interval=%.1fs, recovery=%s)",
            self._poll_interval,
            "on" if self._recover is not None else "off",
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Order scheduler stopped")

    async def run_once(self, now: datetime | None = None) -> CycleReport:
        """Run both steps once; *now* overrides the clock for due commands."""
        failed: list[str] = []
        delivered = resent = 0

        try:
            delivered = await self._service.process_due_commands(now)
        except Exception:
            logger.exception("Delivering due scheduled commands failed")
            failed.append("deliver")

        if self._recover is not None:
            try:
                resent = await self._recover()
            except Exception:
                logger.exception("Re-sending pending order process commands failed")
                failed.append("recover")

        report = CycleReport(delivered, resent, tuple(failed))
        if delivered or resent:
            logger.info(
                "Order scheduler cycle: %d due command(s) delivered, "
                "%d pending command(s) re-sent",
                delivered,
                resent,
            )
        return report

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._wakeup.wait(), self._poll_interval)
            self._wakeup.clear()
