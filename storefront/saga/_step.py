"""
Step constructors.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from combinators import lift as L
from kungfu import LazyCoroResult

from storefront.saga._types import Compensator, SagaStep


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    Compensated step from a lazy Result.

    Example:
        reserve = S.step(
            LazyCoroResult(lambda: ledger.reserve(order_id, lines)),
            compensate=lambda _: ledger.release(order_id),
            name="reserve",
        )
    """
    return SagaStep(action=action, compensate=compensate, name=name)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """Step from a plain coroutine function; exceptions become ``Error(on_error(exc))``."""
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
        name=name,
    )


__all__ = ("step", "from_async")
