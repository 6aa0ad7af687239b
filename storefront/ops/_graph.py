"""
Ops — typed commands dispatched to handlers through nodnod.

Each handler becomes a node. Its parameters are resolved by annotation:
the command itself, plus whatever the runner had injected (ledger,
lifecycles, ...).

    @dataclass(frozen=True, slots=True)
    class AdjustStock(Op[StockItem, InvalidAdjustmentError]):
        stock_id: int
        delta: int
        reason: str

    async def adjust_stock(req: AdjustStock, ledger: StockLedger) -> Result[StockItem, InvalidAdjustmentError]:
        return await ledger.adjust(req.stock_id, req.delta, req.reason)

    runner = ops().on(AdjustStock, adjust_stock).compile().inject(StockLedger, ledger)
    result = await runner.run(AdjustStock(1, -2, "recount"))

Exceptions raised by a handler propagate unchanged.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, cast, get_type_hints

from kungfu import Error, LazyCoroResult, Ok, Result
from nodnod import EventLoopAgent, Node, Scope, Value
from nodnod.utils.create_node import create_node

logger = logging.getLogger(__name__)

type HandlerFunc = Callable[..., Awaitable[Result[Any, Any]]]


class Op[T, E](ABC):
    """Base class for commands; ``T``/``E`` document the handler's Result."""


Returning = Op


@dataclass(frozen=True, slots=True)
class _OpReg:
    op_type: type[Op[Any, Any]]
    handler: HandlerFunc
    node_cls: type[Node[Any, Any]]
    agent: EventLoopAgent


def _node_for_handler(op_type: type[Op[Any, Any]], handler: HandlerFunc) -> type[Node[Any, Any]]:
    """Handler parameters become ``__compose__`` dependencies, resolved by type."""
    sig = inspect.signature(handler)
    hints = get_type_hints(handler)

    annotations: dict[str, Any] = {}
    params: list[inspect.Parameter] = []
    for name, p in sig.parameters.items():
        annotations[name] = hints.get(name, p.annotation)
        params.append(inspect.Parameter(name, inspect.Parameter.POSITIONAL_OR_KEYWORD))
    annotations["return"] = Result[Any, Any]

    async def compose_fn(**kwargs: Any) -> Result[Any, Any]:
        return await handler(**kwargs)

    compose_fn.__annotations__ = annotations
    compose_fn.__signature__ = inspect.Signature(parameters=params)  # type: ignore[attr-defined]
    compose_fn.__name__ = f"compose_{op_type.__name__}"

    return create_node(
        name=f"Node:{op_type.__name__}",
        base_node=Node,
        bases=(),
        namespace={"__compose__": compose_fn, "__module__": handler.__module__},
    )


@dataclass(frozen=True, slots=True)
class OpsBuilder:
    _items: tuple[tuple[type[Op[Any, Any]], HandlerFunc], ...] = ()

    def on(self, op_type: type[Op[Any, Any]], handler: HandlerFunc) -> OpsBuilder:
        """Register ``handler`` for ``op_type``; the last registration wins."""
        others = tuple(i for i in self._items if i[0] is not op_type)
        return OpsBuilder(_items=(*others, (op_type, handler)))

    def compile(self) -> Runner:
        registry: dict[type[Op[Any, Any]], _OpReg] = {}
        for op_type, handler in self._items:
            node_cls = _node_for_handler(op_type, handler)
            registry[op_type] = _OpReg(op_type, handler, node_cls, EventLoopAgent.build({node_cls}))
        return Runner(_registry=registry)


@dataclass(slots=True)
class Runner:
    _registry: dict[type[Op[Any, Any]], _OpReg]
    _injected: dict[type[Any], Any] = field(default_factory=dict)

    def inject(self, typ: type[Any], impl: object) -> Runner:
        """Shared dependency available to every handler."""
        self._injected[typ] = impl
        return self

    def handles(self, op_type: type[Op[Any, Any]]) -> bool:
        return op_type in self._registry

    async def run[T, E](self, req: Op[T, E]) -> Result[T, E]:
        op_type = type(req)
        reg = self._registry.get(op_type)
        if reg is None:
            raise KeyError(f"no handler registered for {op_type.__name__}")

        logger.debug("running op %s", op_type.__name__)
        async with Scope(detail=f"ops:{op_type.__name__}") as scope:
            for typ, impl in self._injected.items():
                scope.push(Value(typ, impl))
            scope.push(Value(op_type, req))

            await reg.agent.run(scope, {})  # type: ignore[misc]

            produced = scope.get(reg.node_cls)
            if produced is None:
                raise KeyError(f"{reg.node_cls.__name__} was not produced")
            value = produced.value
            if isinstance(value, (Ok, Error)):
                return cast(Result[T, E], value)
            return cast(Result[T, E], Ok(value))

    def __call__[T, E](self, req: Op[T, E]) -> LazyCoroResult[T, E]:
        async def inner() -> Result[T, E]:
            return await self.run(req)

        return LazyCoroResult(inner)


def ops() -> OpsBuilder:
    """``ops().on(...).on(...).compile()``"""
    return OpsBuilder()


__all__ = ("Op", "Returning", "HandlerFunc", "OpsBuilder", "Runner", "ops")
