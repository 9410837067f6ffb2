"""EventDispatcher — in-process fan-out of published events."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from inspect import isawaitable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..domain.events import DomainEvent

logger = logging.getLogger("conference_orders.events")


@runtime_checkable
class EventHandler(Protocol):
    def handle(self, event: Any) -> Awaitable[None] | None: ...


EventCallback = Callable[[Any], Awaitable[None] | None]


class EventDispatcher:
    """Delivers each event to the handlers registered for its exact type.

    Handlers run one after another in registration order, and events in the
    order given. A handler exception is logged and re-raised, so the caller
    that published the event sees the failure.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler | EventCallback]] = {}

    def register(
        self,
        event_type: type[DomainEvent],
        handler: EventHandler | EventCallback,
    ) -> None:
        """Register a handler for a specific event type."""
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def handlers_for(
        self, event_type: type[DomainEvent]
    ) -> list[EventHandler | EventCallback]:
        return list(self._handlers.get(event_type, []))

    async def dispatch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            for handler in self._handlers.get(type(event), []):
                await self._invoke(handler, event)

    async def _invoke(
        self, handler: EventHandler | EventCallback, event: DomainEvent
    ) -> None:
        try:
            if isinstance(handler, EventHandler):
                result = handler.handle(event)
            else:
                result = handler(event)
            if isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Error executing handler %s for event %s",
                getattr(handler, "__qualname__", type(handler).__name__),
                type(event).__name__,
            )
            raise
