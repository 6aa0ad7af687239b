"""
Order lifecycle — the only way an order's status changes.

Side effects bound to entering a status:
    CANCELLED → ledger.release(order_id)
    DELIVERED → ledger.commit(order_id)
plus any hooks registered with ``on_enter`` (payments use this).

    lifecycle = OrderLifecycle(MemoryOrderRepository(), ledger)
    await lifecycle.transition(order_id, OrderStatus.CONFIRMED, actor="admin@shop")
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from storefront._types import Identity
from storefront.errors import (
    CancellationNotAllowedError,
    NotFoundError,
    NotOrderOwnerError,
)
from storefront.orders._repo import OrderRepository
from storefront.orders._transitions import (
    CUSTOMER_CANCELLABLE,
    can_transition,
    ensure_transition,
)
from storefront.orders._status import OrderStatus
from storefront.orders._types import Order, StatusChange
from storefront.payments._types import PaymentStatus
from storefront.stock import StockLedger

logger = logging.getLogger(__name__)

type TransitionHook = Callable[[Order, OrderStatus], Awaitable[None]]
"""Called with the updated order and the status it left."""

_ORDER_STATUS_FOR_PAYMENT: dict[PaymentStatus, OrderStatus] = {
    PaymentStatus.SUCCESSFUL: OrderStatus.PAID,
    PaymentStatus.FAILED: OrderStatus.PAYMENT_FAILED,
    PaymentStatus.EXPIRED: OrderStatus.PAYMENT_FAILED,
}


class OrderLifecycle:
    def __init__(self, orders: OrderRepository, ledger: StockLedger) -> None:
        self._orders = orders
        self._ledger = ledger
        self._hooks: defaultdict[OrderStatus, list[TransitionHook]] = defaultdict(list)

    @property
    def orders(self) -> OrderRepository:
        return self._orders

    def on_enter(self, status: OrderStatus, hook: TransitionHook) -> None:
        self._hooks[status].append(hook)

    async def get(self, order_id: str) -> Order:
        order = await self._orders.get(order_id)
        if order is None:
            raise NotFoundError("order", order_id)
        return order

    async def open(self, order: Order) -> Order:
        """Persist a freshly created order."""
        saved = await self._orders.add(order)
        logger.info(
            "order %s placed by %s: %d item(s), total %s, %s",
            saved.id, saved.user_email, len(saved.items), saved.total_price, saved.payment_method,
        )
        return saved

    # ═══════════════════════════════════════════════════════════════════════
    # Transitions
    # ═══════════════════════════════════════════════════════════════════════

    async def transition(
        self,
        order_id: str,
        target: OrderStatus,
        *,
        actor: str = "system",
        reason: str | None = None,
    ) -> Order:
        """
        Move the order to ``target`` if the table allows it from its current
        status; raise InvalidTransitionError otherwise. Status is unchanged on
        refusal.
        """
        while True:
            order = await self.get(order_id)
            if not can_transition(order.status, target):
                logger.error(
                    "refused transition of %s from %s to %s (actor %s)",
                    order_id, order.status, target, actor,
                )
                ensure_transition(order_id, order.status, target)

            change = StatusChange(order_id, order.status, target, actor=actor, reason=reason)
            updated = await self._orders.update_status(order_id, order.status, change)
            if updated is None:
                # Someone moved it first; re-check against the new status.
                continue

            logger.info("order %s: %s -> %s (actor %s)", order_id, order.status, target, actor)
            await self._entered(updated, order.status, actor)
            return updated

    async def cancel(
        self,
        order_id: str,
        *,
        customer: Identity | None = None,
        actor: str = "system",
        reason: str | None = None,
    ) -> Order:
        """
        Cancel an order. With ``customer`` set, only the owner may cancel and
        only from PENDING_PAYMENT, PAID or CONFIRMED.
        """
        if customer is not None:
            order = await self.get(order_id)
            if order.user_email != customer.email:
                raise NotOrderOwnerError(order_id)
            if order.status not in CUSTOMER_CANCELLABLE:
                logger.warning("customer cancel of %s refused in %s", order_id, order.status)
                raise CancellationNotAllowedError(order_id, order.status.value)
            actor = customer.email
        return await self.transition(order_id, OrderStatus.CANCELLED, actor=actor, reason=reason)

    async def apply_payment_status(
        self,
        order_id: str,
        status: PaymentStatus,
        *,
        actor: str = "payment",
    ) -> Order:
        """
        Mirror a payment status onto the order and, while the order is still
        waiting for payment, move it to PAID or PAYMENT_FAILED.
        """
        order = await self._orders.set_payment_status(order_id, status)
        target = _ORDER_STATUS_FOR_PAYMENT.get(status)
        if target is not None and order.status == OrderStatus.PENDING_PAYMENT:
            return await self.transition(order_id, target, actor=actor, reason=f"payment {status}")
        return order

    async def _entered(self, order: Order, previous: OrderStatus, actor: str) -> None:
        match order.status:
            case OrderStatus.CANCELLED:
                await self._ledger.release(order.id, actor=actor)
            case OrderStatus.DELIVERED:
                await self._ledger.commit(order.id, actor=actor)
        for hook in self._hooks.get(order.status, ()):
            await hook(order, previous)


__all__ = ("OrderLifecycle", "TransitionHook")
