"""Conference ticket ordering: event-sourced aggregates coordinated by a saga."""

from .bootstrap import Application, bootstrap
from .config import OrderProcessingConfig, RetryPolicy
from .domain import (
    Order,
    OrderState,
    Reservation,
    ReservationStatus,
    SeatsAvailability,
)
from .integration import ConferenceCreated, PaymentReceived
from .primitives.exceptions import (
    BadRequestError,
    ConferenceOrdersError,
    InvalidOperationError,
    InvalidStateError,
)
from .sagas import OrderProcessManager, OrderProcessState, OrderProcessStatus

__all__ = [
    "Application",
    "BadRequestError",
    "ConferenceCreated",
    "ConferenceOrdersError",
    "InvalidOperationError",
    "InvalidStateError",
    "Order",
    "OrderProcessManager",
    "OrderProcessState",
    "OrderProcessStatus",
    "OrderProcessingConfig",
    "OrderState",
    "PaymentReceived",
    "Reservation",
    "ReservationStatus",
    "RetryPolicy",
    "SeatsAvailability",
    "bootstrap",
]
