"""Command pipeline middleware."""

from .concurrency import ConcurrencyGuardMiddleware, CriticalSection
from .logging import LoggingMiddleware
from .pipeline import build_pipeline
from .retry import OptimisticRetryMiddleware

__all__ = [
    "ConcurrencyGuardMiddleware",
    "CriticalSection",
    "LoggingMiddleware",
    "OptimisticRetryMiddleware",
    "build_pipeline",
]
