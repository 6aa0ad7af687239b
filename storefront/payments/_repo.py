"""
Payment repository — protocol + in-memory implementation.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from storefront.payments._types import Payment, Refund


class PaymentRepository(Protocol):
    async def add(self, payment: Payment) -> Payment: ...

    async def get(self, payment_id: str) -> Payment | None: ...

    async def replace(self, payment: Payment, *, expected: Payment) -> bool:
        """Compare-and-set: store ``payment`` only if the stored copy still equals ``expected``."""
        ...

    async def for_order(self, order_id: str) -> list[Payment]:
        """All attempts, oldest first."""
        ...

    async def all(self) -> list[Payment]: ...

    async def add_refund(self, refund: Refund) -> Refund: ...

    async def refunds(self, payment_id: str) -> list[Refund]: ...


class MemoryPaymentRepository:
    def __init__(self) -> None:
        self._payments: dict[str, Payment] = {}
        self._refunds: list[Refund] = []
        self._lock = asyncio.Lock()

    async def add(self, payment: Payment) -> Payment:
        async with self._lock:
            self._payments[payment.id] = payment
            return payment

    async def get(self, payment_id: str) -> Payment | None:
        return self._payments.get(payment_id)

    async def replace(self, payment: Payment, *, expected: Payment) -> bool:
        async with self._lock:
            current = self._payments.get(payment.id)
            if current is None or current != expected:
                return False
            self._payments[payment.id] = payment
            return True

    async def for_order(self, order_id: str) -> list[Payment]:
        return sorted(
            (p for p in self._payments.values() if p.order_id == order_id),
            key=lambda p: p.created_at,
        )

    async def all(self) -> list[Payment]:
        return list(self._payments.values())

    async def add_refund(self, refund: Refund) -> Refund:
        self._refunds.append(refund)
        return refund

    async def refunds(self, payment_id: str) -> list[Refund]:
        return [r for r in self._refunds if r.payment_id == payment_id]


__all__ = ("PaymentRepository", "MemoryPaymentRepository")
