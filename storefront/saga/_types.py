"""
Saga types — steps, chains, outcomes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from kungfu import LazyCoroResult

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Receives the step's value and undoes it."""


# ═══════════════════════════════════════════════════════════════════════════════
# Expressions
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """One action plus the compensator recorded when it succeeds."""

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None
    name: str = "step"

    def then[U](self, f: Callable[[T], SagaExpr[U, E]]) -> Then[T, U, E]:
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E]:
    """Sequential composition; ``f`` sees the previous step's value."""

    inner: SagaExpr[T, E]
    f: Callable[[T], SagaExpr[U, E]]

    def then[V](self, g: Callable[[U], SagaExpr[V, E]]) -> Then[U, V, E]:
        return Then(self, g)


type SagaExpr[T, E] = SagaStep[T, E] | Then[object, T, E]


# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """The step's own error plus how the rollback went."""

    error: E
    step_failed: str
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaExpr",
    "SagaResult",
    "SagaError",
)
