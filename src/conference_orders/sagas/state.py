"""Order process state: the saga's own persisted state machine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..primitives.exceptions import InvalidOperationError

if TYPE_CHECKING:
    from ..cqrs.command import Command


class OrderProcessStatus(str, Enum):
    AWAITING_RESERVATION_CONFIRMATION = "AwaitingReservationConfirmation"
    AWAITING_PAYMENT = "AwaitingPayment"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    EXPIRED = "Expired"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def stage(self) -> int:
        """Position along the workflow; every terminal status shares the last."""
        return _STAGES[self]


_TERMINAL = frozenset(
    {
        OrderProcessStatus.REJECTED,
        OrderProcessStatus.COMPLETED,
        OrderProcessStatus.EXPIRED,
    }
)
_STAGES = {
    OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION: 1,
    OrderProcessStatus.AWAITING_PAYMENT: 2,
    OrderProcessStatus.REJECTED: 3,
    OrderProcessStatus.COMPLETED: 3,
    OrderProcessStatus.EXPIRED: 3,
}


class StepRecord(BaseModel):
    """Immutable record of a single transition."""

    model_config = ConfigDict(frozen=True)

    status: OrderProcessStatus
    event_type: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PendingCommand(BaseModel):
    """A follow-up command stored with the state before it is sent."""

    command_id: str
    command_type: str
    data: dict[str, Any] = Field(default_factory=dict)
    dispatched: bool = False


class OrderProcessState(BaseModel):
    """
    Progress of one order through reservation, payment and expiry.

    Identity is the order id, which doubles as the reservation id. Legal
    transitions::

        (none) -> AwaitingReservationConfirmation
        AwaitingReservationConfirmation -> AwaitingPayment | Rejected
        AwaitingPayment -> Completed | Expired

    Every other transition raises :class:`InvalidOperationError`.
    """

    order_id: str
    conference_id: str
    status: OrderProcessStatus = OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION
    version: int = 0

    expiry_schedule_id: str | None = None
    processed_event_ids: list[str] = Field(default_factory=list)
    pending_commands: list[PendingCommand] = Field(default_factory=list)
    step_history: list[StepRecord] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    _processed_ids_set: set[str] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context: object) -> None:
        self._processed_ids_set = set(self.processed_event_ids)

    @classmethod
    def start(
        cls, order_id: str, conference_id: str, event_type: str
    ) -> OrderProcessState:
        state = cls(order_id=order_id, conference_id=conference_id)
        state.step_history.append(
            StepRecord(status=state.status, event_type=event_type)
        )
        return state

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    # ── Transitions ──────────────────────────────────────────────────

    def confirm_reservation(self) -> None:
        self._transition(
            OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION,
            OrderProcessStatus.AWAITING_PAYMENT,
            "ReservationAccepted",
        )

    def reject_reservation(self) -> None:
        self._transition(
            OrderProcessStatus.AWAITING_RESERVATION_CONFIRMATION,
            OrderProcessStatus.REJECTED,
            "ReservationRejected",
        )

    def complete_payment(self) -> None:
        self._transition(
            OrderProcessStatus.AWAITING_PAYMENT,
            OrderProcessStatus.COMPLETED,
            "PaymentReceived",
        )

    def expire(self) -> None:
        self._transition(
            OrderProcessStatus.AWAITING_PAYMENT,
            OrderProcessStatus.EXPIRED,
            "OrderExpired",
        )

    def _transition(
        self,
        source: OrderProcessStatus,
        target: OrderProcessStatus,
        event_type: str,
    ) -> None:
        if self.status is not source:
            raise InvalidOperationError(
                self.order_id, f"move to {target.value}", self.status.value
            )
        self.status = target
        self.step_history.append(StepRecord(status=target, event_type=event_type))
        self.touch()

    # ── Idempotency ──────────────────────────────────────────────────

    def is_event_processed(self, event_id: str) -> bool:
        return event_id in self._processed_ids_set

    def mark_event_processed(self, event_id: str) -> None:
        if event_id not in self._processed_ids_set:
            self._processed_ids_set.add(event_id)
            self.processed_event_ids.append(event_id)

    # ── Pending commands ─────────────────────────────────────────────

    def add_pending_command(self, command: Command) -> PendingCommand:
        pending = PendingCommand(
            command_id=command.command_id,
            command_type=type(command).__name__,
            data=command.model_dump(mode="json"),
        )
        self.pending_commands.append(pending)
        return pending

    def mark_dispatched(self, command_id: str) -> None:
        for pending in self.pending_commands:
            if pending.command_id == command_id:
                pending.dispatched = True

    def undispatched_commands(self) -> list[PendingCommand]:
        return [p for p in self.pending_commands if not p.dispatched]

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
