"""InMemoryOrderProcessRepository — dict-backed process state storage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...ports.process_state import IOrderProcessRepository
from ...primitives.exceptions import OptimisticConcurrencyError

if TYPE_CHECKING:
    from ...sagas.state import OrderProcessState


class InMemoryOrderProcessRepository(IOrderProcessRepository):
    """Stores deep copies so loaded states never alias the stored ones."""

    def __init__(self) -> None:
        self._states: dict[str, OrderProcessState] = {}

    async def get(self, order_id: str) -> OrderProcessState | None:
        stored = self._states.get(order_id)
        return stored.model_copy(deep=True) if stored is not None else None

    async def save(self, state: OrderProcessState) -> None:
        stored = self._states.get(state.order_id)
        current = stored.version if stored is not None else 0
        if current != state.version:
            raise OptimisticConcurrencyError(
                f"OrderProcess-{state.order_id}", state.version, current
            )
        state.version += 1
        self._states[state.order_id] = state.model_copy(deep=True)

    async def find_with_pending_commands(
        self, limit: int = 100
    ) -> list[OrderProcessState]:
        found = [
            s.model_copy(deep=True)
            for s in self._states.values()
            if s.undispatched_commands()
        ]
        return found[:limit]

    # --- Test helpers ---

    def __len__(self) -> int:
        return len(self._states)
