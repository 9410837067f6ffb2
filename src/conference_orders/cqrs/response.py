"""Response wrapper for command handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, cast

if TYPE_CHECKING:
    from ..domain.events import DomainEvent


@dataclass(frozen=True)
class CommandResponse:
    """Wrapper returned by command handlers.

    Carries the result payload together with the events that were persisted
    during the command execution plus tracing context.
    """

    result: Any = None
    events: list[DomainEvent] = field(
        default_factory=lambda: cast("list[DomainEvent]", [])
    )
    success: bool = True
    correlation_id: str | None = None
    causation_id: str | None = None
