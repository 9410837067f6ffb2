"""Domain and infrastructure exceptions for conference-orders."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .locking import ResourceIdentifier


class ConferenceOrdersError(Exception):
    """Root exception for the conference-orders bounded context."""


class DomainError(ConferenceOrdersError):
    """Base class for all domain-related errors."""


class InvalidStateError(DomainError):
    """Raised when an aggregate operation is not allowed in its current state.

    Non-retryable: it signals a protocol violation or a redelivery bug.
    """

    def __init__(
        self,
        aggregate_type: str,
        aggregate_id: str,
        operation: str,
        state: object,
    ) -> None:
        self.aggregate_type = aggregate_type
        self.aggregate_id = aggregate_id
        self.operation = operation
        self.state = state
        super().__init__(
            f"Cannot {operation} {aggregate_type} {aggregate_id!r} "
            f"in state {state!s}"
        )


class InvalidOperationError(DomainError):
    """Raised on an illegal order process state transition."""

    def __init__(self, order_id: str, transition: str, status: object) -> None:
        self.order_id = order_id
        self.transition = transition
        self.status = status
        super().__init__(
            f"Order process {order_id!r} cannot {transition} from {status!s}"
        )


class InvariantViolationError(DomainError):
    """Raised when a domain invariant is violated."""


class ValidationError(ConferenceOrdersError):
    """Raised when input to an aggregate operation is invalid.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class BadRequestError(ConferenceOrdersError):
    """Raised when an inbound integration message is malformed.

    The message is rejected and must not be retried automatically.
    """

    def __init__(
        self,
        message: str,
        *,
        message_type: str | None = None,
        errors: list[Any] | None = None,
    ) -> None:
        self.message_type = message_type
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(DomainError):
    """Raised when an aggregate or resource is not found."""


class AggregateNotFoundError(NotFoundError):
    """Raised when a command targets an aggregate that was never created."""

    def __init__(self, aggregate_type: str, aggregate_id: object) -> None:
        self.aggregate_type = aggregate_type
        self.aggregate_id = aggregate_id
        super().__init__(f"{aggregate_type} with id={aggregate_id!r} not found")


class ConcurrencyError(ConferenceOrdersError):
    """Base class for all concurrency-related conflicts.

    The retry middleware catches subclasses that are safe to replay."""


class InfrastructureError(ConferenceOrdersError):
    """Base class for all infrastructure-related errors."""


class PersistenceError(InfrastructureError):
    """Base class for all persistence-related errors."""


class OptimisticConcurrencyError(ConcurrencyError, PersistenceError):
    """Raised when a stream moved past the version a write was computed against."""

    def __init__(
        self,
        stream_id: str,
        expected_version: int,
        actual_version: int,
    ) -> None:
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on {stream_id!r}: expected {expected_version}, "
            f"found {actual_version}"
        )


class StreamAlreadyExistsError(PersistenceError):
    """Raised by a conditional create when the stream already has events."""

    def __init__(self, stream_id: str) -> None:
        self.stream_id = stream_id
        super().__init__(f"Stream {stream_id!r} already exists")


class TransientError(ConferenceOrdersError):
    """Raised for failures the caller may retry later."""


class ConcurrencyRetriesExhaustedError(TransientError):
    """Raised when optimistic concurrency retries are used up."""

    def __init__(self, message_type: str, attempts: int) -> None:
        self.message_type = message_type
        self.attempts = attempts
        super().__init__(
            f"Max conflict resolution attempts reached for {message_type} "
            f"({attempts} attempts)"
        )


class HandlerError(ConferenceOrdersError):
    """Base class for handler registration and lookup errors."""


class HandlerRegistrationError(HandlerError):
    """Raised when a second handler is registered for the same command type."""


class HandlerNotRegisteredError(HandlerError):
    """Raised when no handler is registered for a command type."""


# ── Locking Exceptions ───────────────────────────────────────────────


class LockAcquisitionError(ConcurrencyError):
    """Failed to acquire a per-resource lock within the timeout."""

    def __init__(
        self,
        resource: ResourceIdentifier,
        timeout: float,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.timeout = timeout
        self.reason = reason

        msg = f"Failed to acquire lock on {resource} within {timeout}s"
        if reason:
            msg += f" - {reason}"

        super().__init__(msg)
