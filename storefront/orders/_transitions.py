"""
The order transition table. Every status-changing entry point asks it.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from storefront.errors import InvalidTransitionError
from storefront.orders._status import OrderStatus
from storefront.orders._types import Order, OrderActions
from storefront.payments._types import PaymentMethod

S = OrderStatus

ORDER_TRANSITIONS: Mapping[OrderStatus, frozenset[OrderStatus]] = MappingProxyType({
    S.PENDING_PAYMENT: frozenset({S.PAID, S.CANCELLED, S.PAYMENT_FAILED}),
    S.PAID: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.PROCESSING, S.CANCELLED}),
    S.PROCESSING: frozenset({S.SHIPPED, S.CANCELLED}),
    S.SHIPPED: frozenset({S.DELIVERED}),
    S.PAYMENT_FAILED: frozenset({S.PENDING_PAYMENT, S.CANCELLED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
})

TERMINAL: frozenset[OrderStatus] = frozenset(s for s, nxt in ORDER_TRANSITIONS.items() if not nxt)

CUSTOMER_CANCELLABLE: frozenset[OrderStatus] = frozenset({S.PENDING_PAYMENT, S.PAID, S.CONFIRMED})

_REORDERABLE = frozenset({S.DELIVERED, S.CANCELLED, S.PAYMENT_FAILED})
_TRACKABLE = frozenset({S.CONFIRMED, S.PROCESSING, S.SHIPPED})
_PAYABLE = frozenset({S.PENDING_PAYMENT, S.PAYMENT_FAILED})


def allowed_targets(current: OrderStatus) -> frozenset[OrderStatus]:
    return ORDER_TRANSITIONS[current]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


def ensure_transition(order_id: str, current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError("order", order_id, current.value, target.value)


def available_actions(order: Order) -> OrderActions:
    return OrderActions(
        can_cancel=order.status in CUSTOMER_CANCELLABLE,
        can_reorder=order.status in _REORDERABLE,
        can_track=order.status in _TRACKABLE,
        can_pay_again=(
            order.status in _PAYABLE
            and order.payment_method != PaymentMethod.CASH_ON_DELIVERY
        ),
    )


__all__ = (
    "ORDER_TRANSITIONS",
    "TERMINAL",
    "CUSTOMER_CANCELLABLE",
    "allowed_targets",
    "can_transition",
    "ensure_transition",
    "available_actions",
)
