"""Runtime configuration for the order-processing context."""

from __future__ import annotations

import random
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PAYMENT_WINDOW = timedelta(minutes=15)


class RetryPolicy(BaseModel):
    """Exponential backoff used when an optimistic concurrency conflict is hit."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    initial_delay_ms: int = Field(default=0, ge=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_ms: int = Field(default=1000, ge=0)
    jitter: bool = False

    def calculate_delay(self, attempt: int) -> int:
        """Return delay in milliseconds for the given (zero-based) attempt."""
        delay = min(
            int(self.initial_delay_ms * (self.multiplier**attempt)),
            self.max_delay_ms,
        )
        if self.jitter and delay:
            delay = random.randint(0, delay)  # noqa: S311
        return delay


class OrderProcessingConfig(BaseModel):
    """Settings for the order process manager and its runtime.

    ``payment_window`` accepts a ``timedelta``, a number of seconds or an
    ISO-8601 duration string such as ``"PT15M"``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    payment_window: timedelta = Field(
        default=DEFAULT_PAYMENT_WINDOW, alias="paymentWindow"
    )
    concurrency_retry: RetryPolicy = Field(default_factory=RetryPolicy)
    lock_timeout: float = Field(default=10.0, gt=0)
    scheduler_poll_interval: float = Field(default=1.0, gt=0)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> OrderProcessingConfig:
        return cls.model_validate(dict(data))
