"""Order aggregate: order identity and booking status."""

from __future__ import annotations

from enum import Enum

from ..primitives.exceptions import InvalidStateError, ValidationError
from .aggregate import EventSourcedAggregate
from .events import DomainEvent


class OrderState(str, Enum):
    NEW = "New"
    BOOKED = "Booked"
    REJECTED = "Rejected"


class OrderPlaced(DomainEvent):
    order_id: str
    conference_id: str
    number_of_tickets: int


class MarkedAsBooked(DomainEvent):
    order_id: str


class OrderRejected(DomainEvent):
    order_id: str


class OrderExpired(DomainEvent):
    order_id: str


class Order(EventSourcedAggregate):
    """A ticket order against one conference.

    ``Booked`` may still move to ``Rejected`` (cancellation after booking);
    ``Rejected`` never moves back to ``Booked``.
    """

    conference_id: str = ""
    number_of_tickets: int = 0
    state: OrderState | None = None
    expired: bool = False

    @classmethod
    def place(cls, order_id: str, conference_id: str, number_of_tickets: int) -> Order:
        if number_of_tickets <= 0:
            raise ValidationError(
                {"number_of_tickets": ["must be greater than zero"]}
            )
        order = cls(id=order_id)
        order.record_that(
            OrderPlaced(
                order_id=order_id,
                conference_id=conference_id,
                number_of_tickets=number_of_tickets,
            )
        )
        return order

    def mark_as_booked(self) -> None:
        if self.state is not OrderState.NEW:
            raise InvalidStateError("Order", self.id, "mark as booked", self.state)
        self.record_that(MarkedAsBooked(order_id=self.id))

    def reject(self) -> None:
        if self.state not in (OrderState.NEW, OrderState.BOOKED):
            raise InvalidStateError("Order", self.id, "reject", self.state)
        self.record_that(OrderRejected(order_id=self.id))

    def expire(self) -> bool:
        """Record that the payment window elapsed on a booked order.

        Returns ``False`` without recording anything unless the order is
        ``Booked`` and not yet expired. A scheduled expiry may arrive before
        the reservation was confirmed, or after a cancellation; neither may
        latch the order.

        The order does not know whether it was paid. An explicit expiry of a
        paid order is recorded here and ignored by the order process, which
        cancels its own scheduled expiry on payment.
        """
        if self.state is None:
            raise InvalidStateError("Order", self.id, "expire", self.state)
        if self.expired or self.state is not OrderState.BOOKED:
            return False
        self.record_that(OrderExpired(order_id=self.id))
        return True

    def apply_order_placed(self, event: OrderPlaced) -> None:
        self.conference_id = event.conference_id
        self.number_of_tickets = event.number_of_tickets
        self.state = OrderState.NEW

    def apply_marked_as_booked(self, event: MarkedAsBooked) -> None:
        self.state = OrderState.BOOKED

    def apply_order_rejected(self, event: OrderRejected) -> None:
        self.state = OrderState.REJECTED

    def apply_order_expired(self, event: OrderExpired) -> None:
        self.expired = True


Order.handles(OrderPlaced, MarkedAsBooked, OrderRejected, OrderExpired)

ORDER_EVENTS: tuple[type[DomainEvent], ...] = (
    OrderPlaced,
    MarkedAsBooked,
    OrderRejected,
    OrderExpired,
)
