"""
Order types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from storefront._types import ZERO, Money, SkuRef, new_id, utcnow
from storefront.orders._status import OrderStatus
from storefront.payments._types import PaymentMethod, PaymentStatus


@dataclass(frozen=True, slots=True)
class OrderItem:
    """Name and image are copies taken at order time."""

    product_id: int
    variation_id: int | None
    product_name: str
    product_image: str | None
    quantity: int
    price: Money

    @property
    def sku(self) -> SkuRef:
        return SkuRef(self.product_id, self.variation_id)

    @property
    def total_price(self) -> Money:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    user_id: int
    user_email: str
    address: str
    phone: str
    note: str
    items: tuple[OrderItem, ...]
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def total_price(self) -> Money:
        return sum((i.total_price for i in self.items), ZERO)

    @property
    def reservation_lines(self) -> tuple[tuple[SkuRef, int], ...]:
        return tuple((i.sku, i.quantity) for i in self.items)

    @classmethod
    def create(
        cls,
        *,
        user_id: int,
        user_email: str,
        address: str,
        phone: str,
        note: str,
        items: tuple[OrderItem, ...],
        payment_method: PaymentMethod,
        order_id: str | None = None,
    ) -> Order:
        """New order in its initial statuses. Refuses an empty item list."""
        if not items:
            raise ValueError("an order needs at least one item")
        return cls(
            id=order_id or new_id("ord"),
            user_id=user_id,
            user_email=user_email,
            address=address,
            phone=phone,
            note=note,
            items=items,
            payment_method=payment_method,
        )


@dataclass(frozen=True, slots=True)
class StatusChange:
    """One line of an order's status history. ``previous`` is None on creation."""

    order_id: str
    previous: OrderStatus | None
    status: OrderStatus
    actor: str
    reason: str | None = None
    at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class OrderActions:
    """What the customer may do with an order right now."""

    can_cancel: bool
    can_reorder: bool
    can_track: bool
    can_pay_again: bool


__all__ = ("OrderItem", "Order", "StatusChange", "OrderActions")
