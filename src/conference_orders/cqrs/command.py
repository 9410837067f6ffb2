"""Command base class — immutable intent to change state."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..correlation import get_correlation_id

if TYPE_CHECKING:
    from ..primitives.locking import ResourceIdentifier


class Command(BaseModel):
    """
    Base for all commands.

    The ``correlation_id`` is inherited from the current context, so commands
    issued while handling an event belong to the same workflow. When no
    correlation ID is active the Mediator assigns one at dispatch time.

    Commands that target a single-writer aggregate override
    :meth:`get_critical_resources`; ``ConcurrencyGuardMiddleware`` locks the
    returned resources around the handler.
    """

    model_config = ConfigDict(frozen=True)

    command_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str | None = Field(default_factory=get_correlation_id)

    def get_critical_resources(self) -> list[ResourceIdentifier]:
        return []
