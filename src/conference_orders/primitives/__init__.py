"""Primitives shared by every layer: exceptions and lock identifiers."""

from .exceptions import (
    AggregateNotFoundError,
    BadRequestError,
    ConcurrencyError,
    ConcurrencyRetriesExhaustedError,
    ConferenceOrdersError,
    DomainError,
    HandlerNotRegisteredError,
    HandlerRegistrationError,
    InvalidOperationError,
    InvalidStateError,
    InvariantViolationError,
    LockAcquisitionError,
    NotFoundError,
    OptimisticConcurrencyError,
    PersistenceError,
    StreamAlreadyExistsError,
    TransientError,
    ValidationError,
)
from .locking import ResourceIdentifier

__all__ = [
    "AggregateNotFoundError",
    "BadRequestError",
    "ConcurrencyError",
    "ConcurrencyRetriesExhaustedError",
    "ConferenceOrdersError",
    "DomainError",
    "HandlerNotRegisteredError",
    "HandlerRegistrationError",
    "InvalidOperationError",
    "InvalidStateError",
    "InvariantViolationError",
    "LockAcquisitionError",
    "NotFoundError",
    "OptimisticConcurrencyError",
    "PersistenceError",
    "ResourceIdentifier",
    "StreamAlreadyExistsError",
    "TransientError",
    "ValidationError",
]
