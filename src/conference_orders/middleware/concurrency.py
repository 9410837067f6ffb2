"""ConcurrencyGuardMiddleware — serializes commands per aggregate instance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..ports.middleware import IMiddleware

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..ports.locking import ILockStrategy
    from ..primitives.locking import ResourceIdentifier

logger = logging.getLogger("conference_orders.locking")


class CriticalSection:
    """
    Async context manager holding locks on several resources.

    Resources are deduplicated and acquired in sorted order; a failure part
    way through releases what was already taken.
    """

    def __init__(
        self,
        resources: list[ResourceIdentifier],
        lock_strategy: ILockStrategy,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._resources = sorted(set(resources))
        self._lock_strategy = lock_strategy
        self._timeout = timeout
        self._acquired: list[tuple[ResourceIdentifier, str]] = []

    async def __aenter__(self) -> CriticalSection:
        try:
            for resource in self._resources:
                token = await self._lock_strategy.acquire(
                    resource, timeout=self._timeout
                )
                self._acquired.append((resource, token))
        except BaseException:
            await self._release_all()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self._release_all()

    async def _release_all(self) -> None:
        for resource, token in reversed(self._acquired):
            await self._lock_strategy.release(resource, token)
        self._acquired.clear()


class ConcurrencyGuardMiddleware(IMiddleware):
    """
    Locks ``message.get_critical_resources()`` around the rest of the chain.

    Commands against the same ``Order`` or ``SeatsAvailability`` instance run
    one at a time; commands against different instances run freely.
    """

    def __init__(self, lock_strategy: ILockStrategy, *, timeout: float = 10.0) -> None:
        self._lock_strategy = lock_strategy
        self._timeout = timeout

    async def __call__(
        self,
        message: Any,
        next_handler: Callable[[Any], Awaitable[Any]],
    ) -> Any:
        get_resources = getattr(message, "get_critical_resources", None)
        resources: list[ResourceIdentifier] = get_resources() if get_resources else []
        if not resources:
            return await next_handler(message)

        logger.debug(
            "Locking %s for %s",
            ", ".join(str(r) for r in resources),
            type(message).__name__,
        )
        async with CriticalSection(
            resources, self._lock_strategy, timeout=self._timeout
        ):
            return await next_handler(message)
