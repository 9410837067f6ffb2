"""OrderProcessManager — the saga coordinating Order and SeatsAvailability."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from ..config import DEFAULT_PAYMENT_WINDOW
from ..cqrs.commands import (
    COMMAND_TYPES,
    CancelSeatReservation,
    CommitSeatReservation,
    ExpireOrder,
    MakeSeatReservation,
    MarkAsBooked,
    RejectOrder,
)
from ..domain.order import OrderExpired, OrderPlaced
from ..domain.seats_availability import ReservationAccepted, ReservationRejected
from ..integration import PaymentReceived
from ..middleware.concurrency import CriticalSection
from ..primitives.locking import ResourceIdentifier
from .state import OrderProcessState, OrderProcessStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..cqrs.command import Command
    from ..cqrs.event_dispatcher import EventDispatcher
    from ..domain.events import DomainEvent
    from ..ports.bus import ICommandBus
    from ..ports.locking import ILockStrategy
    from ..ports.process_state import IOrderProcessRepository
    from ..ports.scheduling import ICommandScheduler

logger = logging.getLogger("conference_orders.sagas")


class OrderProcessManager:
    """
    Encodes the cross-aggregate ordering protocol.

    Every handler follows the same shape: under the per-order lock, load the
    process state, apply one transition, store the follow-up commands as
    pending and save; then, outside the lock, send each command and mark it
    dispatched. Sending outside the lock lets the events those commands
    produce come back into this manager synchronously.

    Events that cannot be applied yet (unknown order, or a state that has not
    reached the expected predecessor) are logged and ignored. Events arriving
    after the process is finished are ignored as redeliveries.

    Expiry is scheduled when the order is placed and re-armed with a full
    payment window once the seats are reserved, so an expiry that fired while
    the reservation was still pending never leaves a booked order unguarded.
    """

    def __init__(
        self,
        repository: IOrderProcessRepository,
        command_bus: ICommandBus,
        scheduler: ICommandScheduler,
        lock_strategy: ILockStrategy,
        *,
        payment_window: timedelta = DEFAULT_PAYMENT_WINDOW,
        lock_timeout: float = 10.0,
    ) -> None:
        self.repository = repository
        self.command_bus = command_bus
        self.scheduler = scheduler
        self._lock_strategy = lock_strategy
        self._payment_window = payment_window
        self._lock_timeout = lock_timeout

    def bind_to(self, event_dispatcher: EventDispatcher) -> None:
        """Register one handler per event type with *event_dispatcher*."""
        routes: dict[type[DomainEvent], Callable[..., object]] = {
            OrderPlaced: self.on_order_placed,
            ReservationAccepted: self.on_reservation_accepted,
            ReservationRejected: self.on_reservation_rejected,
            PaymentReceived: self.on_payment_received,
            OrderExpired: self.on_order_expired,
        }
        for event_type, handler in routes.items():
            event_dispatcher.register(event_type, handler)
            logger.debug("Bound %s to %s", event_type.__name__, type(self).__name__)

    # ── Event handlers ───────────────────────────────────────────────

    async def on_order_placed(self, event: OrderPlaced) -> None:
        command = MakeSeatReservation(
            reservation_id=event.order_id,
            conference_id=event.conference_id,
            number_of_seats=event.number_of_tickets,
        )
        async with self._locked(event.order_id):
            if await self.repository.get(event.order_id) is not None:
                logger.debug(
                    "Order process %s already started, ignoring %s",
                    event.order_id,
                    event.event_id,
                )
                return
            state = OrderProcessState.start(
                event.order_id, event.conference_id, type(event).__name__
            )
            state.add_pending_command(command)
            state.mark_event_processed(event.event_id)
            state.expiry_schedule_id = await self._schedule_expiry(event.order_id)
            await self.repository.save(state)

        await self._dispatch(event.order_id, [command])

    async def on_reservation_accepted(self, event: ReservationAccepted) -> None:
        await self._advance(
            event,
            event.reservation_id,
            OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION,
            OrderProcessState.confirm_reservation,
            lambda s: [MarkAsBooked(order_id=s.order_id)],
            rearm_expiry=True,
        )

    async def on_reservation_rejected(self, event: ReservationRejected) -> None:
        await self._advance(
            event,
            event.reservation_id,
            OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION,
            OrderProcessState.reject_reservation,
            lambda s: [RejectOrder(order_id=s.order_id)],
            cancel_expiry=True,
        )

    async def on_payment_received(self, event: PaymentReceived) -> None:
        await self._advance(
            event,
            event.order_id,
            OrderProcessStatus.AWAITING_PAYMENT,
            OrderProcessState.complete_payment,
            lambda s: [
                CommitSeatReservation(
                    reservation_id=s.order_id, conference_id=s.conference_id
                )
            ],
            cancel_expiry=True,
        )

    async def on_order_expired(self, event: OrderExpired) -> None:
        await self._advance(
            event,
            event.order_id,
            OrderProcessStatus.AWAITING_PAYMENT,
            OrderProcessState.expire,
            lambda s: [
                CancelSeatReservation(
                    reservation_id=s.order_id, conference_id=s.conference_id
                ),
                RejectOrder(order_id=s.order_id),
            ],
            cancel_expiry=True,
        )

    # ── Recovery ─────────────────────────────────────────────────────

    async def recover_pending_commands(self, limit: int = 100) -> int:
        """Re-send commands that were stored but never marked dispatched.

        Every command the saga issues is idempotent, so sending one twice
        is harmless. Returns the number of commands re-sent.
        """
        resent = 0
        for state in await self.repository.find_with_pending_commands(limit):
            commands = [
                COMMAND_TYPES[p.command_type].model_validate(p.data)
                for p in state.undispatched_commands()
            ]
            logger.info(
                "Recovering order process %s with %d undispatched command(s)",
                state.order_id,
                len(commands),
            )
            try:
                await self._dispatch(state.order_id, commands)
            except Exception:
                logger.exception("Recovery failed for order process %s", state.order_id)
                continue
            resent += len(commands)
        return resent

    # ── Internals ────────────────────────────────────────────────────

    async def _advance(
        self,
        event: DomainEvent,
        order_id: str,
        expected: OrderProcessStatus,
        transition: Callable[[OrderProcessState], None],
        follow_up: Callable[[OrderProcessState], list[Command]],
        *,
        cancel_expiry: bool = False,
        rearm_expiry: bool = False,
    ) -> None:
        event_name = type(event).__name__
        async with self._locked(order_id):
            state = await self.repository.get(order_id)
            if state is None:
                logger.warning(
                    "No order process for %s, ignoring %s", order_id, event_name
                )
                return
            if state.is_event_processed(event.event_id):
                logger.debug(
                    "Event %s already processed for %s", event.event_id, order_id
                )
                return
            if state.is_terminal:
                logger.debug(
                    "Order process %s already %s, ignoring %s",
                    order_id,
                    state.status.value,
                    event_name,
                )
                return
            if state.status.stage < expected.stage:
                logger.warning(
                    "Order process %s is %s, not yet %s; ignoring %s",
                    order_id,
                    state.status.value,
                    expected.value,
                    event_name,
                )
                return

            transition(state)
            commands = follow_up(state)
            for command in commands:
                state.add_pending_command(command)
            state.mark_event_processed(event.event_id)
            stale_expiry: str | None = None
            if cancel_expiry or rearm_expiry:
                stale_expiry, state.expiry_schedule_id = state.expiry_schedule_id, None
            if rearm_expiry:
                state.expiry_schedule_id = await self._schedule_expiry(order_id)
            await self.repository.save(state)

        logger.info("Order process %s is now %s", order_id, state.status.value)
        if stale_expiry is not None:
            await self._cancel_expiry(order_id, stale_expiry)
        await self._dispatch(order_id, commands)

    async def _dispatch(self, order_id: str, commands: list[Command]) -> None:
        for command in commands:
            await self.command_bus.send(command)
            async with self._locked(order_id):
                state = await self.repository.get(order_id)
                if state is None:
                    continue
                state.mark_dispatched(command.command_id)
                await self.repository.save(state)

    async def _schedule_expiry(self, order_id: str) -> str | None:
        execute_at = datetime.now(timezone.utc) + self._payment_window
        try:
            return await self.scheduler.schedule(
                ExpireOrder(order_id=order_id),
                execute_at,
                description=f"Expire unpaid order {order_id}",
            )
        except Exception:
            logger.exception("Could not schedule expiry of order %s", order_id)
            return None

    async def _cancel_expiry(self, order_id: str, schedule_id: str) -> None:
        try:
            cancelled = await self.scheduler.cancel(schedule_id)
        except Exception:
            logger.exception("Could not cancel expiry of order %s", order_id)
            return
        if not cancelled:
            logger.debug("Expiry of order %s was no longer scheduled", order_id)

    def _locked(self, order_id: str) -> CriticalSection:
        return CriticalSection(
            [ResourceIdentifier("OrderProcess", order_id)],
            self._lock_strategy,
            timeout=self._lock_timeout,
        )
