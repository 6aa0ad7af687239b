from __future__ import annotations

from dataclasses import dataclass

from storefront._types import Money, SkuRef


@dataclass(frozen=True, slots=True)
class CartItem:
    """
    One cart line. Name and image are captured when the line is added so the
    order can denormalize them without another catalog lookup.
    """

    sku: SkuRef
    quantity: int
    unit_price: Money
    selected: bool = True
    product_name: str = ""
    product_image: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity must be at least 1, got {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"unit price must not be negative, got {self.unit_price}")

    @property
    def total(self) -> Money:
        return self.unit_price * self.quantity


__all__ = ("CartItem",)
