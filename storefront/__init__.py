"""
storefront — checkout core for a retail web shop.

    from storefront import checkout as CO   # Idempotent order placement
    from storefront import stock as ST      # Reservation ledger
    from storefront import orders as OR     # Order lifecycle
    from storefront import payments as P    # Payment lifecycle and dispatch
    from storefront import admin as A       # Back-office HTTP surface
"""

from storefront import saga
from storefront import graph
from storefront import guard
from storefront import cart
from storefront import stock
from storefront import orders
from storefront import payments
from storefront import checkout
from storefront._types import (
    Money,
    SkuRef,
    Identity,
    utcnow,
)

__version__ = "0.1.0"

__all__ = (
    "saga",
    "graph",
    "guard",
    "cart",
    "stock",
    "orders",
    "payments",
    "checkout",
    "Money",
    "SkuRef",
    "Identity",
    "utcnow",
)
