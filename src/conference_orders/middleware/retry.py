"""OptimisticRetryMiddleware — replays a command after a version conflict."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..config import RetryPolicy
from ..ports.middleware import IMiddleware
from ..primitives.exceptions import (
    ConcurrencyRetriesExhaustedError,
    OptimisticConcurrencyError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("conference_orders.cqrs")


class OptimisticRetryMiddleware(IMiddleware):
    """Re-runs the inner chain when the event store reports a conflict.

    Handlers reload the aggregate on every run, so a retry reapplies the
    command to the latest stream. After ``policy.max_retries`` further
    conflicts the caller gets :class:`ConcurrencyRetriesExhaustedError`.
    """

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self._policy = policy or RetryPolicy()

    async def __call__(
        self,
        message: Any,
        next_handler: Callable[[Any], Awaitable[Any]],
    ) -> Any:
        msg_name = type(message).__name__
        attempts = self._policy.max_retries + 1
        for attempt in range(attempts):
            try:
                return await next_handler(message)
            except OptimisticConcurrencyError as exc:
                logger.warning(
                    "Conflict detected for %s (attempt %d/%d): %s",
                    msg_name,
                    attempt + 1,
                    attempts,
                    exc,
                )
                if attempt + 1 >= attempts:
                    raise ConcurrencyRetriesExhaustedError(msg_name, attempts) from exc
                delay_ms = self._policy.calculate_delay(attempt)
                if delay_ms:
                    await asyncio.sleep(delay_ms / 1000)
        raise ConcurrencyRetriesExhaustedError(msg_name, attempts)
