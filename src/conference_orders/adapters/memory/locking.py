"""InMemoryLockStrategy — single-process implementation of ILockStrategy."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from ...ports.locking import ILockStrategy
from ...primitives.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from ...primitives.locking import ResourceIdentifier

logger = logging.getLogger("conference_orders.locking")


@dataclass
class _LockState:
    """State for a single resource lock."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    token: str | None = None
    users: int = 0


class InMemoryLockStrategy(ILockStrategy):
    """
    One ``asyncio.Lock`` per resource, created on demand.

    ``asyncio.Lock`` wakes waiters in FIFO order. State for a resource is
    dropped once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], _LockState] = {}

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
    ) -> str:
        key = (resource.resource_type, resource.resource_id)
        state = self._locks.setdefault(key, _LockState())
        state.users += 1
        try:
            await asyncio.wait_for(state.lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError as err:
            self._forget(key, state)
            logger.warning(
                "Lock acquisition on %s timed out after %.1fs", resource, timeout
            )
            raise LockAcquisitionError(resource, timeout, reason="timed out") from err
        except BaseException:
            self._forget(key, state)
            raise

        state.token = str(uuid4())
        logger.debug("Lock acquired: %s", resource)
        return state.token

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        key = (resource.resource_type, resource.resource_id)
        state = self._locks.get(key)
        if state is None or state.token != token:
            logger.warning("Attempted to release invalid or expired lock: %s", resource)
            return
        state.token = None
        state.lock.release()
        self._forget(key, state)
        logger.debug("Lock released: %s", resource)

    def _forget(self, key: tuple[str, str], state: _LockState) -> None:
        state.users -= 1
        if state.users <= 0 and self._locks.get(key) is state:
            del self._locks[key]

    # --- Test helpers ---

    def is_locked(self, resource: ResourceIdentifier) -> bool:
        state = self._locks.get((resource.resource_type, resource.resource_id))
        return state is not None and state.lock.locked()
