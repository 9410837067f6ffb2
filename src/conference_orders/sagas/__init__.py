"""Order process manager and its state machine."""

from .manager import OrderProcessManager
from .state import OrderProcessState, OrderProcessStatus, PendingCommand, StepRecord

__all__ = [
    "OrderProcessManager",
    "OrderProcessState",
    "OrderProcessStatus",
    "PendingCommand",
    "StepRecord",
]
