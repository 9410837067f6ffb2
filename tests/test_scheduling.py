"""Tests for the scheduling package."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conference_orders.adapters.memory import InMemoryCommandScheduler
from conference_orders.cqrs.commands import ExpireOrder
from conference_orders.primitives.exceptions import (
    AggregateNotFoundError,
    PersistenceError,
)
from conference_orders.scheduling.service import CommandSchedulerService
from conference_orders.scheduling.worker import CommandSchedulerWorker


def _past() -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=1)


@pytest.mark.asyncio()
async def test_scheduler_service_executes_due_commands() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    service = CommandSchedulerService(scheduler, send_fn)
    cmd = ExpireOrder(order_id="o-1")
    await scheduler.schedule(cmd, _past())

    count = await service.process_due_commands()

    assert count == 1
    send_fn.assert_called_once_with(cmd)
    assert scheduler.scheduled_count == 0


@pytest.mark.asyncio()
async def test_scheduler_service_skips_future_commands() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    service = CommandSchedulerService(scheduler, send_fn)
    await scheduler.schedule(
        ExpireOrder(order_id="o-1"), datetime.now(timezone.utc) + timedelta(minutes=1)
    )

    count = await service.process_due_commands()

    assert count == 0
    send_fn.assert_not_called()
    assert scheduler.scheduled_count == 1


@pytest.mark.asyncio()
async def test_scheduler_service_accepts_explicit_now() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    service = CommandSchedulerService(scheduler, send_fn)
    execute_at = datetime.now(timezone.utc) + timedelta(minutes=15)
    await scheduler.schedule(ExpireOrder(order_id="o-1"), execute_at)

    assert await service.process_due_commands(now=execute_at) == 1


@pytest.mark.asyncio()
async def test_due_commands_run_oldest_first() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    service = CommandSchedulerService(scheduler, send_fn)
    now = datetime.now(timezone.utc)
    await scheduler.schedule(ExpireOrder(order_id="late"), now - timedelta(seconds=1))
    await scheduler.schedule(ExpireOrder(order_id="early"), now - timedelta(minutes=5))

    await service.process_due_commands()

    assert [c.args[0].order_id for c in send_fn.call_args_list] == ["early", "late"]


@pytest.mark.asyncio()
async def test_infrastructure_failure_keeps_command_scheduled() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock(side_effect=PersistenceError("store unavailable"))
    service = CommandSchedulerService(scheduler, send_fn)
    await scheduler.schedule(ExpireOrder(order_id="o-1"), _past())

    count = await service.process_due_commands()

    assert count == 0
    assert scheduler.scheduled_count == 1


@pytest.mark.asyncio()
async def test_domain_failure_drops_command() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock(side_effect=AggregateNotFoundError("Order", "o-1"))
    service = CommandSchedulerService(scheduler, send_fn)
    await scheduler.schedule(ExpireOrder(order_id="o-1"), _past())

    count = await service.process_due_commands()

    assert count == 0
    assert scheduler.scheduled_count == 0


@pytest.mark.asyncio()
async def test_one_failure_does_not_stop_the_batch() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock(side_effect=[PersistenceError("boom"), None])
    service = CommandSchedulerService(scheduler, send_fn)
    now = datetime.now(timezone.utc)
    await scheduler.schedule(ExpireOrder(order_id="a"), now - timedelta(minutes=2))
    await scheduler.schedule(ExpireOrder(order_id="b"), now - timedelta(minutes=1))

    assert await service.process_due_commands() == 1
    assert scheduler.scheduled_count == 1


@pytest.mark.asyncio()
async def test_cancelled_command_never_runs() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    service = CommandSchedulerService(scheduler, send_fn)
    schedule_id = await scheduler.schedule(ExpireOrder(order_id="o-1"), _past())

    assert await scheduler.cancel(schedule_id) is True
    assert await scheduler.cancel(schedule_id) is False
    assert await service.process_due_commands() == 0
    send_fn.assert_not_called()


@pytest.mark.asyncio()
async def test_naive_datetimes_are_treated_as_utc() -> None:
    scheduler = InMemoryCommandScheduler()
    naive = datetime(2030, 1, 1, 12, 0)

    schedule_id = await scheduler.schedule(ExpireOrder(order_id="o-1"), naive)

    assert scheduler.execute_at(schedule_id) == naive.replace(tzinfo=timezone.utc)


# ── Worker ───────────────────────────────────────────────────────────


@pytest.mark.asyncio()
async def test_scheduler_worker_run_once() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    worker = CommandSchedulerWorker(CommandSchedulerService(scheduler, send_fn))
    cmd = ExpireOrder(order_id="o-1")
    await scheduler.schedule(cmd, _past())

    report = await worker.run_once()

    assert (report.delivered, report.resent) == (1, 0)
    assert not report.idle
    send_fn.assert_called_once_with(cmd)


@pytest.mark.asyncio()
async def test_scheduler_worker_lifecycle() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    worker = CommandSchedulerWorker(
        CommandSchedulerService(scheduler, send_fn), poll_interval=0.01
    )

    await worker.start()
    assert worker.running is True
    await scheduler.schedule(ExpireOrder(order_id="o-1"), _past())
    await asyncio.sleep(0.05)
    await worker.stop()

    assert worker.running is False
    assert send_fn.called
    assert scheduler.scheduled_count == 0


@pytest.mark.asyncio()
async def test_trigger_wakes_worker_before_poll_interval() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    worker = CommandSchedulerWorker(
        CommandSchedulerService(scheduler, send_fn), poll_interval=60.0
    )
    await worker.start()
    await scheduler.schedule(ExpireOrder(order_id="o-1"), _past())

    worker.trigger()
    await asyncio.sleep(0.05)
    await worker.stop()

    send_fn.assert_called_once()


@pytest.mark.asyncio()
async def test_worker_survives_service_errors() -> None:
    calls: list[int] = []

    async def flaky(now: datetime | None = None) -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    service = AsyncMock(spec=CommandSchedulerService)
    service.process_due_commands.side_effect = flaky
    worker = CommandSchedulerWorker(service, poll_interval=0.01)

    await worker.start()
    await asyncio.sleep(0.05)
    still_running = worker.running
    await worker.stop()

    assert still_running is True
    assert len(calls) >= 2


@pytest.mark.asyncio()
async def test_worker_resends_pending_commands_every_cycle() -> None:
    recover = AsyncMock(side_effect=[2, 0])
    worker = CommandSchedulerWorker(
        CommandSchedulerService(InMemoryCommandScheduler(), AsyncMock()),
        recover=recover,
    )

    first = await worker.run_once()
    second = await worker.run_once()

    assert first.resent == 2
    assert second.idle
    assert recover.await_count == 2


@pytest.mark.asyncio()
async def test_failed_recovery_still_delivers_due_commands() -> None:
    scheduler = InMemoryCommandScheduler()
    send_fn = AsyncMock()
    worker = CommandSchedulerWorker(
        CommandSchedulerService(scheduler, send_fn),
        recover=AsyncMock(side_effect=PersistenceError("process store down")),
    )
    await scheduler.schedule(ExpireOrder(order_id="o-1"), _past())

    report = await worker.run_once()

    assert report.delivered == 1
    assert report.failed_steps == ("recover",)
    send_fn.assert_called_once()


@pytest.mark.asyncio()
async def test_timers_are_looked_up_per_order() -> None:
    scheduler = InMemoryCommandScheduler()
    now = datetime.now(timezone.utc)
    later = await scheduler.schedule(
        ExpireOrder(order_id="o-1"), now + timedelta(minutes=15), "Expire o-1"
    )
    sooner = await scheduler.schedule(
        ExpireOrder(order_id="o-1"), now + timedelta(minutes=5)
    )
    await scheduler.schedule(ExpireOrder(order_id="o-2"), now)

    timers = scheduler.scheduled_for("o-1")

    assert [t.schedule_id for t in timers] == [sooner, later]
    assert timers[1].description == "Expire o-1"
    assert scheduler.scheduled_for("o-3") == []
