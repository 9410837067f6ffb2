"""Command handlers for the Order and SeatsAvailability aggregates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..domain.order import Order, OrderState
from ..domain.seats_availability import SeatsAvailability
from ..primitives.exceptions import AggregateNotFoundError, StreamAlreadyExistsError
from .commands import (
    CancelSeatReservation,
    CommitSeatReservation,
    ExpireOrder,
    MakeSeatReservation,
    MarkAsBooked,
    PlaceOrder,
    RejectOrder,
)
from .handler import CommandHandler
from .response import CommandResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..domain.events import DomainEvent
    from ..event_sourcing.repository import EventSourcedRepository
    from ..integration import ConferenceCreated

logger = logging.getLogger("conference_orders.cqrs")


async def _load_order(orders: EventSourcedRepository[Order], order_id: str) -> Order:
    order = await orders.get(order_id)
    if order is None:
        raise AggregateNotFoundError("Order", order_id)
    return order


async def _load_seats(
    seats: EventSourcedRepository[SeatsAvailability], conference_id: str
) -> SeatsAvailability:
    availability = await seats.get(conference_id)
    if availability is None:
        raise AggregateNotFoundError("SeatsAvailability", conference_id)
    return availability


# ── Order ────────────────────────────────────────────────────────────


class PlaceOrderHandler(CommandHandler[PlaceOrder]):
    def __init__(self, orders: EventSourcedRepository[Order]) -> None:
        self._orders = orders

    async def handle(self, command: PlaceOrder) -> CommandResponse:
        order = Order.place(
            command.order_id, command.conference_id, command.number_of_tickets
        )
        try:
            events = await self._orders.save(order)
        except StreamAlreadyExistsError:
            logger.info(
                "Order %s already placed, ignoring redelivery", command.order_id
            )
            return CommandResponse(result=command.order_id)
        return CommandResponse(result=command.order_id, events=events)


class MarkAsBookedHandler(CommandHandler[MarkAsBooked]):
    def __init__(self, orders: EventSourcedRepository[Order]) -> None:
        self._orders = orders

    async def handle(self, command: MarkAsBooked) -> CommandResponse:
        order = await _load_order(self._orders, command.order_id)
        if order.state is OrderState.BOOKED:
            return CommandResponse(result=order.state)
        order.mark_as_booked()
        events = await self._orders.save(order)
        return CommandResponse(result=order.state, events=events)


class RejectOrderHandler(CommandHandler[RejectOrder]):
    def __init__(self, orders: EventSourcedRepository[Order]) -> None:
        self._orders = orders

    async def handle(self, command: RejectOrder) -> CommandResponse:
        order = await _load_order(self._orders, command.order_id)
        if order.state is OrderState.REJECTED:
            return CommandResponse(result=order.state)
        order.reject()
        events = await self._orders.save(order)
        return CommandResponse(result=order.state, events=events)


class ExpireOrderHandler(CommandHandler[ExpireOrder]):
    def __init__(self, orders: EventSourcedRepository[Order]) -> None:
        self._orders = orders

    async def handle(self, command: ExpireOrder) -> CommandResponse:
        order = await _load_order(self._orders, command.order_id)
        if not order.expire():
            logger.debug("Order %s needs no expiry (state=%s)", order.id, order.state)
            return CommandResponse(result=False)
        return CommandResponse(result=True, events=await self._orders.save(order))


# ── SeatsAvailability ────────────────────────────────────────────────


class MakeSeatReservationHandler(CommandHandler[MakeSeatReservation]):
    def __init__(self, seats: EventSourcedRepository[SeatsAvailability]) -> None:
        self._seats = seats

    async def handle(self, command: MakeSeatReservation) -> CommandResponse:
        availability = await _load_seats(self._seats, command.conference_id)
        reservation = availability.make_reservation(
            command.reservation_id, command.number_of_seats
        )
        return CommandResponse(
            result=reservation, events=await self._seats.save(availability)
        )


class CommitSeatReservationHandler(CommandHandler[CommitSeatReservation]):
    def __init__(self, seats: EventSourcedRepository[SeatsAvailability]) -> None:
        self._seats = seats

    async def handle(self, command: CommitSeatReservation) -> CommandResponse:
        availability = await _load_seats(self._seats, command.conference_id)
        availability.commit_reservation(command.reservation_id)
        return CommandResponse(
            result=availability.reservations[command.reservation_id],
            events=await self._seats.save(availability),
        )


class CancelSeatReservationHandler(CommandHandler[CancelSeatReservation]):
    def __init__(self, seats: EventSourcedRepository[SeatsAvailability]) -> None:
        self._seats = seats

    async def handle(self, command: CancelSeatReservation) -> CommandResponse:
        availability = await _load_seats(self._seats, command.conference_id)
        availability.cancel_reservation(command.reservation_id)
        return CommandResponse(
            result=availability.reservations[command.reservation_id],
            events=await self._seats.save(availability),
        )


# ── Integration ──────────────────────────────────────────────────────


class ConferenceCreatedHandler:
    """Creates the seat pool for a new conference exactly once.

    Creation relies on the store's conditional create instead of a prior
    existence read; losing that race is the duplicate-delivery case and is
    treated as success.
    """

    def __init__(
        self,
        seats: EventSourcedRepository[SeatsAvailability],
        publish: Callable[[list[DomainEvent]], Awaitable[None]],
    ) -> None:
        self._seats = seats
        self._publish = publish

    async def handle(self, event: ConferenceCreated) -> None:
        availability = SeatsAvailability.create(
            event.conference_id, event.available_tickets
        )
        try:
            events = await self._seats.save(availability)
        except StreamAlreadyExistsError:
            logger.info(
                "Seats availability for conference %s already exists, "
                "ignoring duplicate ConferenceCreated",
                event.conference_id,
            )
            return
        await self._publish(events)
