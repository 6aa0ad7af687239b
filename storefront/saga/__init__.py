"""
Saga — step chains with compensation.

    from storefront import saga as S

    placement = (
        S.step(reserve_stock, compensate=release_stock, name="reserve")
        .then(lambda reservation: S.step(persist_order(reservation), name="persist"))
    )
    result = await S.run(placement)

Compensators of completed steps run in reverse order when a later step
returns Error, raises, or the running task is cancelled.
"""

from storefront.saga._types import (
    Compensator,
    SagaStep,
    Then,
    SagaExpr,
    SagaResult,
    SagaError,
)
from storefront.saga._step import step, from_async
from storefront.saga._run import run

__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaExpr",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run",
)
