"""Unit tests for OrderProcessManager against a mocked command bus."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conference_orders.adapters.memory import (
    InMemoryCommandScheduler,
    InMemoryLockStrategy,
    InMemoryOrderProcessRepository,
)
from conference_orders.cqrs.commands import (
    CancelSeatReservation,
    CommitSeatReservation,
    MakeSeatReservation,
    MarkAsBooked,
    RejectOrder,
)
from conference_orders.domain.order import OrderExpired, OrderPlaced
from conference_orders.domain.seats_availability import (
    ReservationAccepted,
    ReservationRejected,
)
from conference_orders.integration import PaymentReceived
from conference_orders.primitives.exceptions import (
    InvalidOperationError,
    PersistenceError,
)
from conference_orders.sagas.manager import OrderProcessManager
from conference_orders.sagas.state import OrderProcessStatus

ORDER_ID = "o-1"
CONFERENCE_ID = "c-1"


@pytest.fixture()
def bus() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def repository() -> InMemoryOrderProcessRepository:
    return InMemoryOrderProcessRepository()


@pytest.fixture()
def scheduler() -> InMemoryCommandScheduler:
    return InMemoryCommandScheduler()


@pytest.fixture()
def manager(
    repository: InMemoryOrderProcessRepository,
    bus: AsyncMock,
    scheduler: InMemoryCommandScheduler,
) -> OrderProcessManager:
    return OrderProcessManager(
        repository,
        bus,
        scheduler,
        InMemoryLockStrategy(),
        payment_window=timedelta(minutes=15),
    )


def _placed() -> OrderPlaced:
    return OrderPlaced(
        order_id=ORDER_ID, conference_id=CONFERENCE_ID, number_of_tickets=2
    )


def _accepted() -> ReservationAccepted:
    return ReservationAccepted(
        conference_id=CONFERENCE_ID, reservation_id=ORDER_ID, quantity=2
    )


def _rejected() -> ReservationRejected:
    return ReservationRejected(
        conference_id=CONFERENCE_ID, reservation_id=ORDER_ID, quantity=2
    )


def _sent(bus: AsyncMock) -> list[type]:
    return [type(c.args[0]) for c in bus.send.await_args_list]


@pytest.mark.asyncio()
async def test_order_placed_starts_process(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    scheduler: InMemoryCommandScheduler,
    bus: AsyncMock,
) -> None:
    before = datetime.now(timezone.utc)

    await manager.on_order_placed(_placed())

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.status is OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION
    assert state.undispatched_commands() == []
    command = bus.send.await_args.args[0]
    assert isinstance(command, MakeSeatReservation)
    assert (command.reservation_id, command.number_of_seats) == (ORDER_ID, 2)
    assert state.expiry_schedule_id is not None
    execute_at = scheduler.execute_at(state.expiry_schedule_id)
    assert execute_at is not None
    assert execute_at >= before + timedelta(minutes=15)


@pytest.mark.asyncio()
async def test_redelivered_order_placed_is_ignored(
    manager: OrderProcessManager,
    scheduler: InMemoryCommandScheduler,
    bus: AsyncMock,
) -> None:
    await manager.on_order_placed(_placed())
    await manager.on_order_placed(_placed())

    assert bus.send.await_count == 1
    assert scheduler.scheduled_count == 1


@pytest.mark.asyncio()
async def test_reservation_accepted_books_order(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    bus: AsyncMock,
) -> None:
    await manager.on_order_placed(_placed())

    await manager.on_reservation_accepted(_accepted())

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.status is OrderProcessStatus.AWAITING_PAYMENT
    assert _sent(bus) == [MakeSeatReservation, MarkAsBooked]


@pytest.mark.asyncio()
async def test_acceptance_restarts_the_payment_window(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    scheduler: InMemoryCommandScheduler,
) -> None:
    await manager.on_order_placed(_placed())
    state = await repository.get(ORDER_ID)
    assert state is not None
    placed_timer = state.expiry_schedule_id

    await manager.on_reservation_accepted(_accepted())

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.expiry_schedule_id not in (None, placed_timer)
    assert [t.schedule_id for t in scheduler.scheduled_for(ORDER_ID)] == [
        state.expiry_schedule_id
    ]


@pytest.mark.asyncio()
async def test_same_event_is_processed_once(
    manager: OrderProcessManager, bus: AsyncMock
) -> None:
    await manager.on_order_placed(_placed())
    accepted = _accepted()

    await manager.on_reservation_accepted(accepted)
    await manager.on_reservation_accepted(accepted)

    assert _sent(bus) == [MakeSeatReservation, MarkAsBooked]


@pytest.mark.asyncio()
async def test_reservation_rejected_rejects_order_and_cancels_expiry(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    scheduler: InMemoryCommandScheduler,
    bus: AsyncMock,
) -> None:
    await manager.on_order_placed(_placed())

    await manager.on_reservation_rejected(_rejected())

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.status is OrderProcessStatus.REJECTED
    assert state.expiry_schedule_id is None
    assert scheduler.scheduled_count == 0
    assert _sent(bus)[-1] is RejectOrder


@pytest.mark.asyncio()
async def test_payment_commits_reservation(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    scheduler: InMemoryCommandScheduler,
    bus: AsyncMock,
) -> None:
    await manager.on_order_placed(_placed())
    await manager.on_reservation_accepted(_accepted())

    await manager.on_payment_received(PaymentReceived(order_id=ORDER_ID))

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.status is OrderProcessStatus.COMPLETED
    assert scheduler.scheduled_count == 0
    command = bus.send.await_args.args[0]
    assert isinstance(command, CommitSeatReservation)
    assert command.conference_id == CONFERENCE_ID


@pytest.mark.asyncio()
async def test_expiry_cancels_reservation_then_rejects_order(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    bus: AsyncMock,
) -> None:
    await manager.on_order_placed(_placed())
    await manager.on_reservation_accepted(_accepted())

    await manager.on_order_expired(OrderExpired(order_id=ORDER_ID))

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.status is OrderProcessStatus.EXPIRED
    assert _sent(bus)[-2:] == [CancelSeatReservation, RejectOrder]


@pytest.mark.asyncio()
async def test_illegal_transition_raises(manager: OrderProcessManager) -> None:
    await manager.on_order_placed(_placed())
    await manager.on_reservation_accepted(_accepted())

    with pytest.raises(InvalidOperationError):
        await manager.on_reservation_rejected(_rejected())


@pytest.mark.asyncio()
async def test_events_after_completion_are_ignored(
    manager: OrderProcessManager, bus: AsyncMock
) -> None:
    await manager.on_order_placed(_placed())
    await manager.on_reservation_accepted(_accepted())
    await manager.on_payment_received(PaymentReceived(order_id=ORDER_ID))
    sent = bus.send.await_count

    await manager.on_order_expired(OrderExpired(order_id=ORDER_ID))
    await manager.on_payment_received(PaymentReceived(order_id=ORDER_ID))

    assert bus.send.await_count == sent


@pytest.mark.asyncio()
async def test_early_payment_is_logged_and_ignored(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    caplog: pytest.LogCaptureFixture,
) -> None:
    await manager.on_order_placed(_placed())

    await manager.on_payment_received(PaymentReceived(order_id=ORDER_ID))

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.status is OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION
    assert any("not yet AwaitingPayment" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio()
async def test_scheduler_failure_does_not_block_the_order(
    repository: InMemoryOrderProcessRepository, bus: AsyncMock
) -> None:
    scheduler = AsyncMock(spec=InMemoryCommandScheduler)
    scheduler.schedule.side_effect = PersistenceError("scheduler down")
    manager = OrderProcessManager(repository, bus, scheduler, InMemoryLockStrategy())

    await manager.on_order_placed(_placed())

    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.expiry_schedule_id is None
    assert _sent(bus) == [MakeSeatReservation]


@pytest.mark.asyncio()
async def test_undispatched_commands_are_recovered(
    manager: OrderProcessManager,
    repository: InMemoryOrderProcessRepository,
    bus: AsyncMock,
) -> None:
    await manager.on_order_placed(_placed())
    bus.send.side_effect = PersistenceError("bus down")
    with pytest.raises(PersistenceError):
        await manager.on_reservation_accepted(_accepted())
    state = await repository.get(ORDER_ID)
    assert state is not None
    assert [p.command_type for p in state.undispatched_commands()] == ["MarkAsBooked"]

    bus.send.side_effect = None
    resent = await manager.recover_pending_commands()

    assert resent == 1
    assert isinstance(bus.send.await_args.args[0], MarkAsBooked)
    state = await repository.get(ORDER_ID)
    assert state is not None
    assert state.undispatched_commands() == []
    assert await manager.recover_pending_commands() == 0
