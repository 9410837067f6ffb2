"""Observers that log published events for operators."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .domain.order import MarkedAsBooked, OrderExpired, OrderPlaced, OrderRejected
from .domain.seats_availability import (
    ReservationAccepted,
    ReservationCancelled,
    ReservationCommitted,
    ReservationRejected,
    SeatsAvailabilityCreated,
)
from .integration import PaymentReceived

if TYPE_CHECKING:
    from collections.abc import Callable

    from .cqrs.event_dispatcher import EventDispatcher
    from .domain.events import DomainEvent

logger = logging.getLogger("conference_orders.events")

#: event type -> (log level, message template, identifying attribute)
EVENT_LOG_LINES: dict[type[DomainEvent], tuple[int, str, str]] = {
    OrderPlaced: (logging.INFO, "Order placed (%s)", "order_id"),
    MarkedAsBooked: (logging.INFO, "Order marked as booked (%s)", "order_id"),
    OrderRejected: (logging.WARNING, "Order rejected (%s)", "order_id"),
    OrderExpired: (logging.WARNING, "Order expired (%s)", "order_id"),
    SeatsAvailabilityCreated: (
        logging.INFO,
        "Seats availability created (%s)",
        "conference_id",
    ),
    ReservationAccepted: (
        logging.INFO,
        "Reservation accepted (%s)",
        "reservation_id",
    ),
    ReservationRejected: (
        logging.WARNING,
        "Reservation rejected (%s)",
        "reservation_id",
    ),
    ReservationCommitted: (
        logging.INFO,
        "Reservation committed (%s)",
        "reservation_id",
    ),
    ReservationCancelled: (
        logging.INFO,
        "Reservation cancelled (%s)",
        "reservation_id",
    ),
    PaymentReceived: (logging.INFO, "Payment received (%s)", "order_id"),
}


class EventLogObserver:
    """Writes one log line per published event.

    The line for each event type is looked up once, when :meth:`bind_to`
    registers a dedicated callback for it.
    """

    def __init__(
        self,
        lines: dict[type[DomainEvent], tuple[int, str, str]] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._lines = dict(EVENT_LOG_LINES if lines is None else lines)
        self._log = log or logger

    def bind_to(self, event_dispatcher: EventDispatcher) -> None:
        for event_type, (level, template, attribute) in self._lines.items():
            event_dispatcher.register(
                event_type, self._writer(level, template, attribute)
            )

    def _writer(
        self, level: int, template: str, attribute: str
    ) -> Callable[[DomainEvent], None]:
        def write(event: DomainEvent) -> None:
            self._log.log(level, template, getattr(event, attribute))

        write.__qualname__ = f"EventLogObserver[{template.split(' (')[0]}]"
        return write


class NotificationHooks:
    """Marks the points where customer notifications would be sent.

    Delivery of emails and invoices belongs to other services; this only
    announces that the trigger happened.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logging.getLogger("conference_orders.notifications")

    def bind_to(self, event_dispatcher: EventDispatcher) -> None:
        event_dispatcher.register(OrderPlaced, self.on_order_placed)
        event_dispatcher.register(ReservationCommitted, self.on_reservation_committed)

    def on_order_placed(self, event: OrderPlaced) -> None:
        self._log.info(
            "Now send out an email confirming order %s for %d ticket(s)",
            event.order_id,
            event.number_of_tickets,
        )

    def on_reservation_committed(self, event: ReservationCommitted) -> None:
        self._log.info(
            "Start creating and sending the invoice for reservation %s",
            event.reservation_id,
        )
