"""
Core types for storefront.

Value types shared by every component.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Amounts are exact decimals in the store currency."""

ZERO: Money = Decimal("0")

# ═══════════════════════════════════════════════════════════════════════════════
# SKU Reference
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SkuRef:
    """
    Identity of a stockable unit: product + optional variation.

    Two cart lines with the same SkuRef compete for the same stock row.
    """

    product_id: int
    variation_id: int | None = None

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.product_id, -1 if self.variation_id is None else self.variation_id)

    def __str__(self) -> str:
        if self.variation_id is None:
            return f"product {self.product_id}"
        return f"product {self.product_id} (variation {self.variation_id})"


# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated caller. Only the facts checkout needs."""

    user_id: int
    email: str
    name: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(UTC)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Money",
    "ZERO",
    "SkuRef",
    "Identity",
    "new_id",
    "utcnow",
)
