"""In-memory adapters for tests and single-process deployments."""

from .event_store import InMemoryEventStore
from .locking import InMemoryLockStrategy
from .process_state import InMemoryOrderProcessRepository
from .scheduling import InMemoryCommandScheduler, ScheduledCommand

__all__ = [
    "InMemoryCommandScheduler",
    "InMemoryEventStore",
    "InMemoryLockStrategy",
    "InMemoryOrderProcessRepository",
    "ScheduledCommand",
]
