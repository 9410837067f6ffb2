"""LoggingMiddleware: one line per command, naming the aggregates it touched."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from ..ports.middleware import IMiddleware
from ..primitives.exceptions import DomainError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("conference_orders.cqrs")


def _targets(message: Any) -> str:
    get_resources = getattr(message, "get_critical_resources", None)
    resources = get_resources() if get_resources else []
    return ", ".join(str(r) for r in resources) or "-"


class LoggingMiddleware(IMiddleware):
    """
    Logs each command against the aggregates it locks.

    Success is logged at INFO with the number of events persisted. A
    :class:`DomainError` means the order or seat rules refused the command
    and is logged at WARNING without a traceback. Anything else is logged
    with its traceback. Both are re-raised.
    """

    async def __call__(
        self,
        message: Any,
        next_handler: Callable[[Any], Awaitable[Any]],
    ) -> Any:
        name = type(message).__name__
        targets = _targets(message)
        correlation_id = getattr(message, "correlation_id", None)
        logger.debug("%s -> %s (correlation_id=%s)", name, targets, correlation_id)

        started = time.perf_counter()
        try:
            result = await next_handler(message)
        except DomainError as exc:
            logger.warning(
                "%s -> %s refused after %.1fms: %s",
                name,
                targets,
                (time.perf_counter() - started) * 1000,
                exc,
            )
            raise
        except Exception:
            logger.exception(
                "%s -> %s failed after %.1fms (correlation_id=%s)",
                name,
                targets,
                (time.perf_counter() - started) * 1000,
                correlation_id,
            )
            raise

        events = len(getattr(result, "events", None) or ())
        logger.info(
            "%s -> %s handled in %.1fms, %d event(s)",
            name,
            targets,
            (time.perf_counter() - started) * 1000,
            events,
        )
        return result
