"""Domain model: event-sourced aggregates and their events."""

from .aggregate import EventSourcedAggregate
from .events import DomainEvent, EventTypeRegistry
from .order import (
    ORDER_EVENTS,
    MarkedAsBooked,
    Order,
    OrderExpired,
    OrderPlaced,
    OrderRejected,
    OrderState,
)
from .seats_availability import (
    SEATS_EVENTS,
    Reservation,
    ReservationAccepted,
    ReservationCancelled,
    ReservationCommitted,
    ReservationRejected,
    ReservationStatus,
    SeatsAvailability,
    SeatsAvailabilityCreated,
)

__all__ = [
    "ORDER_EVENTS",
    "SEATS_EVENTS",
    "DomainEvent",
    "EventSourcedAggregate",
    "EventTypeRegistry",
    "MarkedAsBooked",
    "Order",
    "OrderExpired",
    "OrderPlaced",
    "OrderRejected",
    "OrderState",
    "Reservation",
    "ReservationAccepted",
    "ReservationCancelled",
    "ReservationCommitted",
    "ReservationRejected",
    "ReservationStatus",
    "SeatsAvailability",
    "SeatsAvailabilityCreated",
]
