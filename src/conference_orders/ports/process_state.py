"""IOrderProcessRepository — persistence for order process states."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..sagas.state import OrderProcessState


@runtime_checkable
class IOrderProcessRepository(Protocol):
    async def get(self, order_id: str) -> OrderProcessState | None:
        """Return the process state for *order_id*, or ``None``."""
        ...

    async def save(self, state: OrderProcessState) -> None:
        """Persist *state* if nobody saved a newer version meanwhile.

        Raises ``OptimisticConcurrencyError`` on a version mismatch and bumps
        ``state.version`` on success.
        """
        ...

    async def find_with_pending_commands(
        self, limit: int = 100
    ) -> list[OrderProcessState]:
        """Return states holding commands that were stored but not sent."""
        ...
