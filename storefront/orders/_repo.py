"""
Order repository — protocol + in-memory implementation.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Protocol

from storefront._types import utcnow
from storefront.orders._status import OrderStatus
from storefront.orders._types import Order, StatusChange
from storefront.payments._types import PaymentStatus


class OrderRepository(Protocol):
    async def add(self, order: Order) -> Order: ...

    async def get(self, order_id: str) -> Order | None: ...

    async def update_status(
        self,
        order_id: str,
        expected: OrderStatus,
        change: StatusChange,
    ) -> Order | None:
        """
        Compare-and-set: move to ``change.status`` only if the order is still in
        ``expected``, appending ``change`` to its history. None if it was not.
        """
        ...

    async def set_payment_status(self, order_id: str, status: PaymentStatus) -> Order: ...

    async def for_user(self, user_email: str) -> list[Order]:
        """Newest first."""
        ...

    async def by_status(self, status: OrderStatus) -> list[Order]: ...

    async def history(self, order_id: str) -> list[StatusChange]: ...


class MemoryOrderRepository:
    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._history: dict[str, list[StatusChange]] = {}
        self._lock = asyncio.Lock()

    async def add(self, order: Order) -> Order:
        async with self._lock:
            if order.id in self._orders:
                raise ValueError(f"order {order.id} already exists")
            self._orders[order.id] = order
            self._history[order.id] = [
                StatusChange(order.id, None, order.status, actor=order.user_email, at=order.created_at)
            ]
            return order

    async def get(self, order_id: str) -> Order | None:
        return self._orders.get(order_id)

    async def update_status(
        self,
        order_id: str,
        expected: OrderStatus,
        change: StatusChange,
    ) -> Order | None:
        async with self._lock:
            current = self._orders.get(order_id)
            if current is None or current.status != expected:
                return None
            updated = replace(current, status=change.status, updated_at=change.at)
            self._orders[order_id] = updated
            self._history[order_id].append(change)
            return updated

    async def set_payment_status(self, order_id: str, status: PaymentStatus) -> Order:
        async with self._lock:
            updated = replace(self._orders[order_id], payment_status=status, updated_at=utcnow())
            self._orders[order_id] = updated
            return updated

    async def for_user(self, user_email: str) -> list[Order]:
        mine = [o for o in self._orders.values() if o.user_email == user_email]
        return sorted(mine, key=lambda o: o.created_at, reverse=True)

    async def by_status(self, status: OrderStatus) -> list[Order]:
        return [o for o in self._orders.values() if o.status == status]

    async def history(self, order_id: str) -> list[StatusChange]:
        return list(self._history.get(order_id, ()))


__all__ = ("OrderRepository", "MemoryOrderRepository")
