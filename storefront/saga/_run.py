"""
Saga execution with rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from kungfu import Error, Ok, Result

from storefront.saga._types import (
    Compensator,
    SagaError,
    SagaExpr,
    SagaResult,
    SagaStep,
    Then,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Journal — what has run and how to undo it
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class _Journal:
    steps: int = 0
    current: str = ""
    undo: list[tuple[str, Any, Compensator[Any]]] = field(default_factory=list)

    async def rollback(self) -> tuple[int, int]:
        """Run recorded compensators newest first. Returns (run, failed)."""
        ran = failed = 0
        while self.undo:
            name, value, compensate = self.undo.pop()
            try:
                await compensate(value)
                ran += 1
            except Exception:
                failed += 1
                logger.exception("compensator for step %r failed", name)
        return ran, failed


async def _interpret(expr: SagaExpr[Any, Any], journal: _Journal) -> Result[Any, Any]:
    match expr:
        case SagaStep(action=action, compensate=compensate, name=name):
            journal.steps += 1
            journal.current = name
            result = await action
            match result:
                case Ok(value):
                    if compensate is not None:
                        journal.undo.append((name, value, compensate))
                    return Ok(value)
                case Error(_):
                    return result
        case Then(inner=inner, f=f):
            first = await _interpret(inner, journal)
            match first:
                case Ok(value):
                    return await _interpret(f(value), journal)
                case Error(_):
                    return first
    raise TypeError(f"not a saga expression: {expr!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# run()
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](saga: SagaExpr[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a step or chain.

    On Error: compensators run in reverse, SagaError reports the failed step.
    On exception or task cancellation: compensators run, then the exception
    propagates unchanged.

    Example:
        match await S.run(placement):
            case Ok(done):
                order = done.value
            case Error(failure):
                log.warning("failed at %s", failure.step_failed)
    """
    journal = _Journal()
    try:
        result = await _interpret(saga, journal)
    except BaseException:
        logger.warning(
            "saga interrupted in step %r; rolling back %d step(s)",
            journal.current, len(journal.undo),
        )
        await journal.rollback()
        raise

    match result:
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=journal.steps,
                compensators_recorded=len(journal.undo),
            ))
        case Error(error):
            logger.warning(
                "saga step %r failed: %s; rolling back %d step(s)",
                journal.current, error, len(journal.undo),
            )
            ran, failed = await journal.rollback()
            return Error(SagaError(
                error=error,
                step_failed=journal.current,
                compensators_run=ran,
                compensators_failed=failed,
            ))


__all__ = ("run",)
