"""Ports: protocols the application depends on."""

from .background_worker import IBackgroundWorker
from .bus import ICommandBus
from .event_store import IEventStore, StoredEvent
from .locking import ILockStrategy
from .middleware import IMiddleware
from .process_state import IOrderProcessRepository
from .scheduling import ICommandScheduler

__all__ = [
    "IBackgroundWorker",
    "ICommandBus",
    "ICommandScheduler",
    "IEventStore",
    "ILockStrategy",
    "IMiddleware",
    "IOrderProcessRepository",
    "StoredEvent",
]
