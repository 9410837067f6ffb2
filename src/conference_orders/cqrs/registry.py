"""Command handler registry with conflict detection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..primitives.exceptions import HandlerRegistrationError

if TYPE_CHECKING:
    from .command import Command
    from .handler import CommandHandler

logger = logging.getLogger("conference_orders.cqrs")


class HandlerRegistry:
    """Maps each command type to exactly one handler instance.

    Registering a second, different handler for the same command type raises
    :class:`HandlerRegistrationError`.
    """

    def __init__(self) -> None:
        self._command_handlers: dict[type[Command], CommandHandler] = {}

    def register_command_handler(
        self, command_type: type[Command], handler: CommandHandler
    ) -> None:
        existing = self._command_handlers.get(command_type)
        if existing is not None and existing is not handler:
            msg = (
                f"Duplicate command handler for {command_type.__name__}: "
                f"{type(existing).__name__} already registered, "
                f"cannot register {type(handler).__name__}"
            )
            raise HandlerRegistrationError(msg)
        self._command_handlers[command_type] = handler
        logger.debug(
            "Registered command handler %s -> %s",
            command_type.__name__,
            type(handler).__name__,
        )

    def get_command_handler(self, command_type: type[Command]) -> CommandHandler | None:
        return self._command_handlers.get(command_type)

    def registered_commands(self) -> list[type[Command]]:
        return list(self._command_handlers)
