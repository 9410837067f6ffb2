"""build_pipeline — construct middleware chain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..ports.middleware import IMiddleware


def build_pipeline(
    middlewares: list[IMiddleware],
    handler_fn: Callable[[Any], Awaitable[Any]],
) -> Callable[[Any], Awaitable[Any]]:
    """Wrap *handler_fn* so the first middleware in the list runs outermost."""
    pipeline: Callable[[Any], Awaitable[Any]] = handler_fn

    for mw in reversed(middlewares):
        current_next = pipeline

        async def _wrapper(
            message: Any,
            _mw: IMiddleware = mw,
            _next: Callable[[Any], Awaitable[Any]] = current_next,
        ) -> Any:
            return await _mw(message, _next)

        pipeline = _wrapper

    return pipeline
