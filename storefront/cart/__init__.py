"""
Cart — items and which of them go to checkout.

    from storefront import cart as CT

    cart = CT.CartStore()
    cart.add(SkuRef(1), quantity=2, unit_price=Decimal("150000"))
    cart.selected_total()
"""

from storefront.cart._types import CartItem
from storefront.cart._store import CartStore, add_checked

__all__ = ("CartItem", "CartStore", "add_checked")
