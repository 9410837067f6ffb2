"""IBackgroundWorker — lifecycle of long-running workers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IBackgroundWorker(Protocol):
    async def start(self) -> None:
        """Start the worker loop."""
        ...

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        ...
