"""
Cart store — explicitly owned by a session, mutated only through its methods.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from kungfu import Error, Ok, Result

from storefront._types import ZERO, Money, SkuRef
from storefront.cart._types import CartItem
from storefront.errors import InvalidItem

if TYPE_CHECKING:
    from storefront.stock import StockLedger

logger = logging.getLogger(__name__)


class CartStore:
    """Lines keyed by SKU; insertion order is display order."""

    def __init__(self) -> None:
        self._items: dict[SkuRef, CartItem] = {}

    # ═══════════════════════════════════════════════════════════════════════
    # Mutations
    # ═══════════════════════════════════════════════════════════════════════

    def add(
        self,
        sku: SkuRef,
        *,
        quantity: int,
        unit_price: Money,
        product_name: str = "",
        product_image: str | None = None,
    ) -> CartItem:
        """Add a line, or grow the existing line for the same SKU."""
        existing = self._items.get(sku)
        if existing is None:
            item = CartItem(
                sku=sku,
                quantity=quantity,
                unit_price=unit_price,
                product_name=product_name,
                product_image=product_image,
            )
        else:
            if quantity < 1:
                raise ValueError(f"quantity must be at least 1, got {quantity}")
            item = replace(
                existing,
                quantity=existing.quantity + quantity,
                unit_price=unit_price,
            )
        self._items[sku] = item
        return item

    def set_quantity(self, sku: SkuRef, quantity: int) -> CartItem:
        item = replace(self._get(sku), quantity=quantity)
        self._items[sku] = item
        return item

    def remove(self, sku: SkuRef) -> None:
        self._items.pop(sku, None)

    def select(self, sku: SkuRef, selected: bool = True) -> None:
        self._items[sku] = replace(self._get(sku), selected=selected)

    def select_all(self, selected: bool = True) -> None:
        for sku, item in self._items.items():
            self._items[sku] = replace(item, selected=selected)

    def remove_lines(self, skus: tuple[SkuRef, ...]) -> None:
        """Drop the lines that were checked out; unselected lines stay."""
        for sku in skus:
            self._items.pop(sku, None)

    def clear(self) -> None:
        self._items.clear()

    # ═══════════════════════════════════════════════════════════════════════
    # Queries
    # ═══════════════════════════════════════════════════════════════════════

    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items.values())

    def selected(self) -> tuple[CartItem, ...]:
        return tuple(i for i in self._items.values() if i.selected)

    def selected_total(self) -> Money:
        return sum((i.total for i in self.selected()), ZERO)

    def __len__(self) -> int:
        return len(self._items)

    def _get(self, sku: SkuRef) -> CartItem:
        try:
            return self._items[sku]
        except KeyError:
            raise KeyError(f"{sku} is not in the cart") from None


async def add_checked(
    cart: CartStore,
    ledger: StockLedger,
    sku: SkuRef,
    *,
    quantity: int,
    unit_price: Money,
    product_name: str = "",
    product_image: str | None = None,
) -> Result[CartItem, InvalidItem]:
    """
    Add only if the ledger can cover the resulting line quantity.

    Read-only against stock; nothing is reserved until checkout.
    """
    already = next((i.quantity for i in cart.items() if i.sku == sku), 0)
    check = await ledger.validate(sku, already + quantity)
    if not check.available:
        logger.info("add to cart refused for %s: %s", sku, check.message)
        return Error(InvalidItem(sku, check.message or "out of stock", check.available_quantity))
    return Ok(cart.add(
        sku,
        quantity=quantity,
        unit_price=unit_price,
        product_name=product_name,
        product_image=product_image,
    ))


__all__ = ("CartStore", "add_checked")
