"""
Stock store — storage protocol + in-memory implementation.

The ledger decides *what* changes; a store only guarantees that a StockChange
is applied atomically or not at all.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import AsyncExitStack
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from kungfu import Error, Ok, Result

from storefront._types import SkuRef, utcnow
from storefront.errors import NotFoundError
from storefront.stock._types import (
    ApplyConflict,
    NegativeStock,
    Reservation,
    ReservationExists,
    ReservationNotActive,
    ReservationState,
    StockChange,
    StockDelta,
    StockItem,
    StockMovement,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class StockStore(Protocol):
    async def add(self, sku: SkuRef, *, min_stock_level: int) -> StockItem:
        """Create an empty stock row for a SKU."""
        ...

    async def get(self, stock_id: int) -> StockItem | None: ...

    async def find(self, sku: SkuRef) -> StockItem | None: ...

    async def all(self) -> list[StockItem]: ...

    async def reservation(self, order_id: str) -> Reservation | None: ...

    async def movements(
        self,
        *,
        stock_id: int | None = None,
        reference: str | None = None,
        since: datetime | None = None,
    ) -> list[StockMovement]: ...

    async def apply(self, change: StockChange) -> Result[tuple[StockItem, ...], ApplyConflict]:
        """
        Apply every delta, append every movement and move the reservation, in
        one atomic unit. Must serialize per stock row so two concurrent changes
        cannot both pass the non-negative check on stale quantities.
        """
        ...


def fold_deltas(deltas: tuple[StockDelta, ...]) -> tuple[StockDelta, ...]:
    """Merge deltas that touch the same row; result is ordered by stock id."""
    merged: dict[int, StockDelta] = {}
    for d in deltas:
        seen = merged.get(d.stock_id)
        if seen is None:
            merged[d.stock_id] = d
        else:
            merged[d.stock_id] = StockDelta(
                d.stock_id,
                available=seen.available + d.available,
                reserved=seen.reserved + d.reserved,
            )
    return tuple(merged[k] for k in sorted(merged))


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryStockStore:
    """
    In-process store. One asyncio.Lock per stock row, always taken in stock-id
    order so overlapping batches cannot deadlock.
    """

    def __init__(self) -> None:
        self._items: dict[int, StockItem] = {}
        self._by_sku: dict[SkuRef, int] = {}
        self._movements: list[StockMovement] = []
        self._reservations: dict[str, Reservation] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._next_id = 1

    async def add(self, sku: SkuRef, *, min_stock_level: int) -> StockItem:
        if sku in self._by_sku:
            raise ValueError(f"{sku} already has a stock row")
        item = StockItem(
            id=self._next_id,
            sku=sku,
            available_stock=0,
            reserved_stock=0,
            min_stock_level=min_stock_level,
        )
        self._next_id += 1
        self._items[item.id] = item
        self._by_sku[sku] = item.id
        return item

    async def get(self, stock_id: int) -> StockItem | None:
        return self._items.get(stock_id)

    async def find(self, sku: SkuRef) -> StockItem | None:
        stock_id = self._by_sku.get(sku)
        return None if stock_id is None else self._items[stock_id]

    async def all(self) -> list[StockItem]:
        return sorted(self._items.values(), key=lambda i: i.id)

    async def reservation(self, order_id: str) -> Reservation | None:
        return self._reservations.get(order_id)

    async def movements(
        self,
        *,
        stock_id: int | None = None,
        reference: str | None = None,
        since: datetime | None = None,
    ) -> list[StockMovement]:
        return [
            m for m in self._movements
            if (stock_id is None or m.stock_id == stock_id)
            and (reference is None or m.reference == reference)
            and (since is None or m.created_at >= since)
        ]

    async def apply(self, change: StockChange) -> Result[tuple[StockItem, ...], ApplyConflict]:
        deltas = fold_deltas(change.deltas)
        async with AsyncExitStack() as stack:
            for d in deltas:
                await stack.enter_async_context(self._locks[d.stock_id])

            conflict = self._check(change, deltas)
            if conflict is not None:
                return Error(conflict)

            now = utcnow()
            updated: list[StockItem] = []
            for d in deltas:
                item = self._items[d.stock_id]
                item = replace(
                    item,
                    available_stock=item.available_stock + d.available,
                    reserved_stock=item.reserved_stock + d.reserved,
                    updated_at=now,
                )
                self._items[item.id] = item
                updated.append(item)

            for m in change.movements:
                self._movements.append(replace(m, id=len(self._movements) + 1))

            if change.open_reservation is not None:
                self._reservations[change.open_reservation.order_id] = change.open_reservation
            if change.settle is not None:
                order_id, state = change.settle
                self._reservations[order_id] = replace(self._reservations[order_id], state=state)

            return Ok(tuple(updated))

    def _check(self, change: StockChange, deltas: tuple[StockDelta, ...]) -> ApplyConflict | None:
        opening = change.open_reservation
        if opening is not None and opening.order_id in self._reservations:
            return ReservationExists(opening.order_id)

        if change.settle is not None:
            order_id, _ = change.settle
            current = self._reservations.get(order_id)
            if current is None or current.state != ReservationState.ACTIVE:
                return ReservationNotActive(order_id)

        for d in deltas:
            item = self._items.get(d.stock_id)
            if item is None:
                raise NotFoundError("stock item", d.stock_id)
            if item.available_stock + d.available < 0 or item.reserved_stock + d.reserved < 0:
                return NegativeStock(d.stock_id, item.available_stock, item.reserved_stock, d)
        return None


__all__ = ("StockStore", "MemoryStockStore", "fold_deltas")
