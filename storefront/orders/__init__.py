"""
Orders — model, transition table, lifecycle.

    from storefront import orders as O

    O.can_transition(O.OrderStatus.SHIPPED, O.OrderStatus.CANCELLED)  # False
    await lifecycle.transition(order_id, O.OrderStatus.SHIPPED, actor="warehouse")
"""

from storefront.orders._status import OrderStatus
from storefront.orders._types import (
    OrderItem,
    Order,
    StatusChange,
    OrderActions,
)
from storefront.orders._transitions import (
    ORDER_TRANSITIONS,
    TERMINAL,
    CUSTOMER_CANCELLABLE,
    allowed_targets,
    can_transition,
    ensure_transition,
    available_actions,
)
from storefront.orders._repo import OrderRepository, MemoryOrderRepository
from storefront.orders._lifecycle import OrderLifecycle, TransitionHook

__all__ = (
    "OrderStatus",
    "OrderItem",
    "Order",
    "StatusChange",
    "OrderActions",
    "ORDER_TRANSITIONS",
    "TERMINAL",
    "CUSTOMER_CANCELLABLE",
    "allowed_targets",
    "can_transition",
    "ensure_transition",
    "available_actions",
    "OrderRepository",
    "MemoryOrderRepository",
    "OrderLifecycle",
    "TransitionHook",
)
