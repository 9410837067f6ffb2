"""Abstract command handler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from .response import CommandResponse

from .command import Command

C = TypeVar("C", bound=Command)


class CommandHandler(ABC, Generic[C]):
    """Base class for command handlers.

    A handler loads one aggregate, invokes one method on it and persists the
    result. It returns the persisted events in a :class:`CommandResponse`;
    publishing them is the Mediator's job.
    """

    @abstractmethod
    async def handle(self, command: C) -> CommandResponse:
        """Process *command* and return a response with produced events."""
