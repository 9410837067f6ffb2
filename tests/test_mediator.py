"""Tests for the command pipeline: registry, middleware, mediator and dispatcher."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from conference_orders.config import RetryPolicy
from conference_orders.correlation import get_correlation_id, set_correlation_id
from conference_orders.cqrs.commands import MarkAsBooked, RejectOrder
from conference_orders.cqrs.event_dispatcher import EventDispatcher
from conference_orders.cqrs.handler import CommandHandler
from conference_orders.cqrs.mediator import Mediator
from conference_orders.cqrs.registry import HandlerRegistry
from conference_orders.cqrs.response import CommandResponse
from conference_orders.domain.order import MarkedAsBooked
from conference_orders.middleware.logging import LoggingMiddleware
from conference_orders.middleware.pipeline import build_pipeline
from conference_orders.middleware.retry import OptimisticRetryMiddleware
from conference_orders.primitives.exceptions import (
    ConcurrencyRetriesExhaustedError,
    HandlerNotRegisteredError,
    HandlerRegistrationError,
    InvalidStateError,
    OptimisticConcurrencyError,
)


class BookingHandler(CommandHandler[MarkAsBooked]):
    def __init__(self) -> None:
        self.seen_correlation_ids: list[str | None] = []

    async def handle(self, command: MarkAsBooked) -> CommandResponse:
        self.seen_correlation_ids.append(get_correlation_id())
        return CommandResponse(
            result="booked", events=[MarkedAsBooked(order_id=command.order_id)]
        )


def _conflict() -> OptimisticConcurrencyError:
    return OptimisticConcurrencyError("Order-o-1", 1, 2)


# ── Registry ─────────────────────────────────────────────────────────


def test_registry_rejects_second_handler() -> None:
    registry = HandlerRegistry()
    registry.register_command_handler(MarkAsBooked, BookingHandler())

    with pytest.raises(HandlerRegistrationError):
        registry.register_command_handler(MarkAsBooked, BookingHandler())


def test_registry_allows_reregistering_same_instance() -> None:
    registry = HandlerRegistry()
    handler = BookingHandler()
    registry.register_command_handler(MarkAsBooked, handler)
    registry.register_command_handler(MarkAsBooked, handler)

    assert registry.get_command_handler(MarkAsBooked) is handler


# ── Pipeline ─────────────────────────────────────────────────────────


@pytest.mark.asyncio()
async def test_build_pipeline_runs_first_middleware_outermost() -> None:
    calls: list[str] = []

    def tracer(name: str) -> Any:
        async def middleware(message: object, next_handler: Any) -> Any:
            calls.append(f"{name}:before")
            result = await next_handler(message)
            calls.append(f"{name}:after")
            return result

        return middleware

    async def handler(message: object) -> str:
        calls.append("handler")
        return "done"

    pipeline = build_pipeline([tracer("outer"), tracer("inner")], handler)

    assert await pipeline("msg") == "done"
    assert calls == [
        "outer:before",
        "inner:before",
        "handler",
        "inner:after",
        "outer:after",
    ]


# ── Optimistic retry ─────────────────────────────────────────────────


@pytest.mark.asyncio()
async def test_retry_reruns_after_conflict() -> None:
    next_handler = AsyncMock(side_effect=[_conflict(), "ok"])
    middleware = OptimisticRetryMiddleware(RetryPolicy(max_retries=3))

    assert await middleware(MarkAsBooked(order_id="o-1"), next_handler) == "ok"
    assert next_handler.await_count == 2


@pytest.mark.asyncio()
async def test_retry_gives_up_with_transient_error() -> None:
    next_handler = AsyncMock(side_effect=_conflict())
    middleware = OptimisticRetryMiddleware(RetryPolicy(max_retries=2))

    with pytest.raises(ConcurrencyRetriesExhaustedError) as exc_info:
        await middleware(MarkAsBooked(order_id="o-1"), next_handler)

    assert exc_info.value.attempts == 3
    assert next_handler.await_count == 3


@pytest.mark.asyncio()
async def test_retry_does_not_touch_domain_errors() -> None:
    error = InvalidStateError("Order", "o-1", "mark as booked", "Rejected")
    next_handler = AsyncMock(side_effect=error)
    middleware = OptimisticRetryMiddleware()

    with pytest.raises(InvalidStateError):
        await middleware(MarkAsBooked(order_id="o-1"), next_handler)
    assert next_handler.await_count == 1


def test_exponential_delay_is_capped() -> None:
    policy = RetryPolicy(initial_delay_ms=100, multiplier=2.0, max_delay_ms=300)

    assert [policy.calculate_delay(n) for n in range(4)] == [100, 200, 300, 300]


# ── Logging ──────────────────────────────────────────────────────────


@pytest.mark.asyncio()
async def test_logging_names_locked_aggregate_and_event_count(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level("INFO", logger="conference_orders.cqrs")
    next_handler = AsyncMock(
        return_value=CommandResponse(events=[MarkedAsBooked(order_id="o-1")])
    )

    await LoggingMiddleware()(MarkAsBooked(order_id="o-1"), next_handler)

    [record] = caplog.records
    assert record.getMessage().startswith("MarkAsBooked -> Order:o-1 handled in")
    assert record.getMessage().endswith(", 1 event(s)")


@pytest.mark.asyncio()
async def test_logging_reports_refusals_without_traceback(
    caplog: pytest.LogCaptureFixture,
) -> None:
    error = InvalidStateError("Order", "o-1", "mark as booked", "Rejected")
    next_handler = AsyncMock(side_effect=error)

    with pytest.raises(InvalidStateError):
        await LoggingMiddleware()(MarkAsBooked(order_id="o-1"), next_handler)

    [record] = [r for r in caplog.records if r.levelname == "WARNING"]
    assert "Order:o-1 refused" in record.getMessage()
    assert record.exc_info is None


# ── Mediator ─────────────────────────────────────────────────────────


@pytest.mark.asyncio()
async def test_mediator_publishes_enriched_events() -> None:
    registry = HandlerRegistry()
    registry.register_command_handler(MarkAsBooked, BookingHandler())
    dispatcher = EventDispatcher()
    received: list[MarkedAsBooked] = []
    dispatcher.register(MarkedAsBooked, received.append)
    mediator = Mediator(registry, dispatcher)

    command = MarkAsBooked(order_id="o-1", correlation_id="corr-1")
    response = await mediator.send(command)

    assert response.result == "booked"
    assert response.correlation_id == "corr-1"
    assert response.causation_id == command.command_id
    assert received[0].correlation_id == "corr-1"
    assert received[0].causation_id == command.command_id


@pytest.mark.asyncio()
async def test_mediator_scopes_correlation_id_to_send() -> None:
    handler = BookingHandler()
    registry = HandlerRegistry()
    registry.register_command_handler(MarkAsBooked, handler)
    mediator = Mediator(registry, EventDispatcher())
    set_correlation_id(None)

    response = await mediator.send(MarkAsBooked(order_id="o-1"))

    assert response.correlation_id is not None
    assert handler.seen_correlation_ids == [response.correlation_id]
    assert get_correlation_id() is None


@pytest.mark.asyncio()
async def test_mediator_requires_a_handler() -> None:
    mediator = Mediator(HandlerRegistry(), EventDispatcher())

    with pytest.raises(HandlerNotRegisteredError):
        await mediator.send(RejectOrder(order_id="o-1"))


# ── EventDispatcher ──────────────────────────────────────────────────


@pytest.mark.asyncio()
async def test_dispatcher_supports_callables_and_handler_objects() -> None:
    dispatcher = EventDispatcher()
    calls: list[str] = []

    class Recorder:
        async def handle(self, event: MarkedAsBooked) -> None:
            calls.append(f"object:{event.order_id}")

    async def on_booked(event: MarkedAsBooked) -> None:
        calls.append(f"coroutine:{event.order_id}")

    dispatcher.register(MarkedAsBooked, Recorder())
    dispatcher.register(MarkedAsBooked, on_booked)
    dispatcher.register(MarkedAsBooked, on_booked)

    await dispatcher.dispatch([MarkedAsBooked(order_id="o-1")])

    assert calls == ["object:o-1", "coroutine:o-1"]


@pytest.mark.asyncio()
async def test_dispatcher_reraises_handler_errors(
    caplog: pytest.LogCaptureFixture,
) -> None:
    dispatcher = EventDispatcher()

    def explode(event: MarkedAsBooked) -> None:
        raise RuntimeError("boom")

    dispatcher.register(MarkedAsBooked, explode)

    with pytest.raises(RuntimeError, match="boom"):
        await dispatcher.dispatch([MarkedAsBooked(order_id="o-1")])
    assert any("Error executing handler" in r.getMessage() for r in caplog.records)
