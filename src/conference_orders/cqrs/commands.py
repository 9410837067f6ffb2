"""Commands accepted by the order and seat-availability aggregates."""

from __future__ import annotations

from pydantic import Field

from ..primitives.locking import ResourceIdentifier
from .command import Command


class OrderCommand(Command):
    order_id: str = Field(min_length=1)

    def get_critical_resources(self) -> list[ResourceIdentifier]:
        return [ResourceIdentifier("Order", self.order_id)]


class SeatsCommand(Command):
    conference_id: str = Field(min_length=1)

    def get_critical_resources(self) -> list[ResourceIdentifier]:
        return [ResourceIdentifier("SeatsAvailability", self.conference_id)]


class PlaceOrder(OrderCommand):
    conference_id: str = Field(min_length=1)
    number_of_tickets: int = Field(gt=0)


class RejectOrder(OrderCommand):
    pass


class ExpireOrder(OrderCommand):
    pass


class MarkAsBooked(OrderCommand):
    pass


class MakeSeatReservation(SeatsCommand):
    reservation_id: str = Field(min_length=1)
    number_of_seats: int = Field(gt=0)


class CommitSeatReservation(SeatsCommand):
    reservation_id: str = Field(min_length=1)


class CancelSeatReservation(SeatsCommand):
    reservation_id: str = Field(min_length=1)


#: Lookup used to rebuild commands stored by the process manager.
COMMAND_TYPES: dict[str, type[Command]] = {
    cls.__name__: cls
    for cls in (
        PlaceOrder,
        RejectOrder,
        ExpireOrder,
        MarkAsBooked,
        MakeSeatReservation,
        CommitSeatReservation,
        CancelSeatReservation,
    )
}
