"""Mediator — routes commands through middleware, then publishes events."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from ..correlation import (
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from ..domain.events import enrich_event_metadata
from ..middleware.pipeline import build_pipeline
from ..ports.bus import ICommandBus
from ..primitives.exceptions import HandlerNotRegisteredError

if TYPE_CHECKING:
    from ..ports.middleware import IMiddleware
    from .command import Command
    from .event_dispatcher import EventDispatcher
    from .registry import HandlerRegistry
    from .response import CommandResponse

logger = logging.getLogger("conference_orders.cqrs")


class Mediator(ICommandBus):
    """Single entry point for commands.

    ``send`` runs the handler inside the middleware chain and only then
    publishes the returned events, so per-aggregate locks are already
    released when event handlers (and the commands they issue) run.

    The command's correlation ID becomes the context correlation ID for the
    duration of ``send``; commands created by event handlers inherit it.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        event_dispatcher: EventDispatcher,
        *,
        middlewares: list[IMiddleware] | None = None,
    ) -> None:
        self._registry = registry
        self._event_dispatcher = event_dispatcher
        self._middlewares = list(middlewares or [])

    async def send(self, command: Command) -> CommandResponse:
        if not command.correlation_id:
            correlation_id = get_correlation_id() or generate_correlation_id()
            command = command.model_copy(update={"correlation_id": correlation_id})

        previous = get_correlation_id()
        set_correlation_id(command.correlation_id)
        try:
            return await self._dispatch_command(command)
        finally:
            set_correlation_id(previous)

    async def _dispatch_command(self, command: Command) -> CommandResponse:
        handler = self._registry.get_command_handler(type(command))
        if handler is None:
            raise HandlerNotRegisteredError(
                f"No handler registered for command {type(command).__name__}"
            )

        pipeline = build_pipeline(self._middlewares, handler.handle)
        result: CommandResponse = await pipeline(command)

        events = [
            enrich_event_metadata(
                e,
                correlation_id=command.correlation_id,
                causation_id=command.command_id,
            )
            for e in result.events
        ]
        result = replace(
            result,
            events=events,
            correlation_id=result.correlation_id or command.correlation_id,
            causation_id=result.causation_id or command.command_id,
        )

        await self._event_dispatcher.dispatch(result.events)
        return result
