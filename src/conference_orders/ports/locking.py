"""ILockStrategy — per-resource mutual exclusion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..primitives.locking import ResourceIdentifier


@runtime_checkable
class ILockStrategy(Protocol):
    """
    Serializes writers of the same resource.

    An in-process implementation is enough for a single worker; distributed
    deployments plug in a shared lock service with the same contract.
    """

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
    ) -> str:
        """
        Acquire the lock for *resource*.

        Returns:
            A token that must be passed back to :meth:`release`.

        Raises:
            LockAcquisitionError: If the lock is not obtained within *timeout*.
        """
        ...

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        """Release a lock previously returned by :meth:`acquire`."""
        ...
