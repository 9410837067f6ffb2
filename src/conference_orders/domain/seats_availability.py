"""SeatsAvailability aggregate: seat inventory for one conference."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..primitives.exceptions import (
    InvalidStateError,
    InvariantViolationError,
    ValidationError,
)
from .aggregate import EventSourcedAggregate
from .events import DomainEvent


class ReservationStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class Reservation(BaseModel):
    """Outcome of one reservation request, kept for idempotent replays."""

    model_config = ConfigDict(frozen=True)

    reservation_id: str
    quantity: int
    status: ReservationStatus

    @property
    def holds_seats(self) -> bool:
        return self.status in (ReservationStatus.ACCEPTED, ReservationStatus.COMMITTED)


class SeatsAvailabilityCreated(DomainEvent):
    conference_id: str
    available_tickets: int


class ReservationAccepted(DomainEvent):
    conference_id: str
    reservation_id: str
    quantity: int


class ReservationRejected(DomainEvent):
    conference_id: str
    reservation_id: str
    quantity: int


class ReservationCommitted(DomainEvent):
    conference_id: str
    reservation_id: str
    quantity: int


class ReservationCancelled(DomainEvent):
    conference_id: str
    reservation_id: str
    quantity: int


class SeatsAvailability(EventSourcedAggregate):
    """Remaining capacity and reservation bookkeeping for a conference.

    ``total_available_tickets`` plus the quantities of accepted and committed
    reservations always equals ``capacity``.
    """

    capacity: int = 0
    total_available_tickets: int = 0
    reservations: dict[str, Reservation] = Field(default_factory=dict)

    @classmethod
    def create(cls, conference_id: str, available_tickets: int) -> SeatsAvailability:
        if available_tickets < 0:
            raise ValidationError(
                {"available_tickets": ["must not be negative"]}
            )
        seats = cls(id=conference_id)
        seats.record_that(
            SeatsAvailabilityCreated(
                conference_id=conference_id, available_tickets=available_tickets
            )
        )
        return seats

    @property
    def reserved_tickets(self) -> int:
        return sum(r.quantity for r in self.reservations.values() if r.holds_seats)

    def make_reservation(self, reservation_id: str, quantity: int) -> Reservation:
        """Accept or reject a reservation request.

        A known ``reservation_id`` replays the recorded outcome without
        emitting anything. Running out of seats is a business outcome, so it
        is recorded as ``ReservationRejected`` rather than raised.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["must be greater than zero"]})
        known = self.reservations.get(reservation_id)
        if known is not None:
            return known
        event_type: type[ReservationAccepted | ReservationRejected]
        if quantity <= self.total_available_tickets:
            event_type = ReservationAccepted
        else:
            event_type = ReservationRejected
        self.record_that(
            event_type(
                conference_id=self.id,
                reservation_id=reservation_id,
                quantity=quantity,
            )
        )
        return self.reservations[reservation_id]

    def commit_reservation(self, reservation_id: str) -> None:
        """Turn an accepted reservation into a sale; a no-op once committed."""
        reservation = self._accepted_reservation(
            reservation_id, "commit", ReservationStatus.COMMITTED
        )
        if reservation is None:
            return
        self.record_that(
            ReservationCommitted(
                conference_id=self.id,
                reservation_id=reservation_id,
                quantity=reservation.quantity,
            )
        )

    def cancel_reservation(self, reservation_id: str) -> None:
        """Return an accepted reservation's seats; a no-op once cancelled."""
        reservation = self._accepted_reservation(
            reservation_id, "cancel", ReservationStatus.CANCELLED
        )
        if reservation is None:
            return
        self.record_that(
            ReservationCancelled(
                conference_id=self.id,
                reservation_id=reservation_id,
                quantity=reservation.quantity,
            )
        )

    def _accepted_reservation(
        self, reservation_id: str, operation: str, target: ReservationStatus
    ) -> Reservation | None:
        """Return the reservation if it may move to *target*, ``None`` if it
        already has."""
        reservation = self.reservations.get(reservation_id)
        status = reservation.status if reservation is not None else None
        if status is target:
            return None
        if reservation is None or status is not ReservationStatus.ACCEPTED:
            raise InvalidStateError(
                "SeatsAvailability",
                self.id,
                f"{operation} reservation {reservation_id!r}",
                status.value if status is not None else "missing",
            )
        return reservation

    def apply_seats_availability_created(
        self, event: SeatsAvailabilityCreated
    ) -> None:
        self.capacity = event.available_tickets
        self.total_available_tickets = event.available_tickets

    def apply_reservation_accepted(self, event: ReservationAccepted) -> None:
        self.total_available_tickets -= event.quantity
        self._set_reservation(
            event.reservation_id, event.quantity, ReservationStatus.ACCEPTED
        )

    def apply_reservation_rejected(self, event: ReservationRejected) -> None:
        self._set_reservation(
            event.reservation_id, event.quantity, ReservationStatus.REJECTED
        )

    def apply_reservation_committed(self, event: ReservationCommitted) -> None:
        self._set_reservation(
            event.reservation_id, event.quantity, ReservationStatus.COMMITTED
        )

    def apply_reservation_cancelled(self, event: ReservationCancelled) -> None:
        self.total_available_tickets += event.quantity
        self._set_reservation(
            event.reservation_id, event.quantity, ReservationStatus.CANCELLED
        )

    def _set_reservation(
        self, reservation_id: str, quantity: int, status: ReservationStatus
    ) -> None:
        self.reservations[reservation_id] = Reservation(
            reservation_id=reservation_id, quantity=quantity, status=status
        )
        self._check_capacity()

    def _check_capacity(self) -> None:
        if self.total_available_tickets < 0 or (
            self.total_available_tickets + self.reserved_tickets != self.capacity
        ):
            raise InvariantViolationError(
                f"Seats for conference {self.id!r} out of balance: "
                f"available={self.total_available_tickets} "
                f"reserved={self.reserved_tickets} capacity={self.capacity}"
            )


SeatsAvailability.handles(
    SeatsAvailabilityCreated,
    ReservationAccepted,
    ReservationRejected,
    ReservationCommitted,
    ReservationCancelled,
)

SEATS_EVENTS: tuple[type[DomainEvent], ...] = (
    SeatsAvailabilityCreated,
    ReservationAccepted,
    ReservationRejected,
    ReservationCommitted,
    ReservationCancelled,
)
