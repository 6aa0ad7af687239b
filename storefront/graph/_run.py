"""
Runner — thin layer over nodnod's EventLoopAgent.

Dependencies are discovered from the target node; injected values are
matched to ``__compose__`` annotations by type.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, cast

from nodnod import EventLoopAgent, Node, Scope, Value

logger = logging.getLogger(__name__)

type Injection = tuple[type[Any], Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════════════


def _build(target: type[Any]) -> EventLoopAgent:
    return EventLoopAgent.build({cast(type[Node[Any, Any]], target)})


async def _execute[T](
    agent: EventLoopAgent,
    target: type[T],
    injections: tuple[Injection, ...],
) -> T:
    async with Scope(detail=target.__name__) as scope:
        for typ, value in injections:
            scope.push(Value(typ, value))

        run_method = cast(
            Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]],
            getattr(agent, "run"),
        )
        logger.debug("running graph %s", target.__name__)
        await run_method(scope, {})

        result = scope.get(target)
        if result is None:
            raise KeyError(f"{target.__name__} was not produced")
        return cast(T, result.value)


# ═══════════════════════════════════════════════════════════════════════════════
# Run — one-shot fluent builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Run[T]:
    """
    Awaitable run of one target node.

        placed = await run(PlacedOrder).inject(ctx)
        stock = await run(StockNode).inject_as(StockStore, store)
    """

    _target: type[T]
    _agent: EventLoopAgent | None
    _injections: tuple[Injection, ...] = ()

    def inject(self, value: object) -> Run[T]:
        """Inject by runtime type."""
        return self.inject_as(cast(type[Any], type(value)), value)

    def inject_as[V](self, typ: type[V], value: V) -> Run[T]:
        """Inject under an explicit type (protocols, base classes)."""
        return Run(self._target, self._agent, (*self._injections, (typ, value)))

    def __await__(self) -> Any:
        agent = self._agent if self._agent is not None else _build(self._target)
        return _execute(agent, self._target, self._injections).__await__()


def run[T](target: type[T]) -> Run[T]:
    return Run(target, None)


# ═══════════════════════════════════════════════════════════════════════════════
# Compiled — build the agent once, run many times
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Compiled[T]:
    _target: type[T]
    _agent: EventLoopAgent

    def run(self) -> Run[T]:
        return Run(self._target, self._agent)

    async def __call__(self, *inputs: object) -> T:
        pending = self.run()
        for value in inputs:
            pending = pending.inject(value)
        return await pending


def graph[T](target: type[T]) -> Compiled[T]:
    """Pre-compile the graph rooted at ``target``."""
    return Compiled(target, _build(target))


__all__ = ("Run", "run", "Compiled", "graph")
