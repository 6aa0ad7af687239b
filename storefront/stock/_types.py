"""
Stock types — items, movements, reservations, and the change sets stores apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from storefront._types import SkuRef, utcnow


# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class MovementType(StrEnum):
    IN = "IN"
    OUT = "OUT"
    RESERVED = "RESERVED"
    RELEASED = "RELEASED"
    ADJUSTMENT = "ADJUSTMENT"
    DAMAGED = "DAMAGED"
    RETURNED = "RETURNED"


class StockStatus(StrEnum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class ReservationState(StrEnum):
    """
    ACTIVE → RELEASED (order cancelled)
           → COMMITTED (order delivered)
    """

    ACTIVE = "ACTIVE"
    RELEASED = "RELEASED"
    COMMITTED = "COMMITTED"


class AlertType(StrEnum):
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class Severity(StrEnum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ═══════════════════════════════════════════════════════════════════════════════
# Stock Item
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StockItem:
    """
    Quantities for one SKU.

    available_stock: sellable, not promised to any order
    reserved_stock: promised to open orders, still on the shelf
    Both are never negative.
    """

    id: int
    sku: SkuRef
    available_stock: int
    reserved_stock: int
    min_stock_level: int = 0
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def on_hand(self) -> int:
        return self.available_stock + self.reserved_stock

    @property
    def status(self) -> StockStatus:
        if self.available_stock == 0:
            return StockStatus.OUT_OF_STOCK
        if self.available_stock <= self.min_stock_level:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK


# ═══════════════════════════════════════════════════════════════════════════════
# Movements — append-only audit trail
# ═══════════════════════════════════════════════════════════════════════════════

_ON_HAND_SIGN: dict[MovementType, int] = {
    MovementType.IN: 1,
    MovementType.RETURNED: 1,
    MovementType.ADJUSTMENT: 1,
    MovementType.OUT: -1,
    MovementType.DAMAGED: -1,
    MovementType.RESERVED: 0,
    MovementType.RELEASED: 0,
}


@dataclass(frozen=True, slots=True)
class StockMovement:
    """
    quantity is a magnitude, except ADJUSTMENT where it is the signed delta.
    """

    stock_id: int
    sku: SkuRef
    type: MovementType
    quantity: int
    reason: str
    reference: str | None
    actor: str
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None

    @property
    def on_hand_effect(self) -> int:
        """How this movement changes available + reserved."""
        return _ON_HAND_SIGN[self.type] * self.quantity


# ═══════════════════════════════════════════════════════════════════════════════
# Reservations
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ReservationLine:
    stock_id: int
    sku: SkuRef
    quantity: int


@dataclass(frozen=True, slots=True)
class Reservation:
    order_id: str
    lines: tuple[ReservationLine, ...]
    state: ReservationState = ReservationState.ACTIVE
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.state == ReservationState.ACTIVE


# ═══════════════════════════════════════════════════════════════════════════════
# Change Sets — what a store applies atomically
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StockDelta:
    stock_id: int
    available: int = 0
    reserved: int = 0


@dataclass(frozen=True, slots=True)
class StockChange:
    """
    All-or-nothing unit: every delta keeps both quantities non-negative, the
    reservation precondition holds, or nothing is written.
    """

    deltas: tuple[StockDelta, ...]
    movements: tuple[StockMovement, ...]
    open_reservation: Reservation | None = None
    settle: tuple[str, ReservationState] | None = None


@dataclass(frozen=True, slots=True)
class NegativeStock:
    """A delta would drive a quantity below zero."""

    stock_id: int
    available: int
    reserved: int
    delta: StockDelta


@dataclass(frozen=True, slots=True)
class ReservationNotActive:
    order_id: str


@dataclass(frozen=True, slots=True)
class ReservationExists:
    order_id: str


type ApplyConflict = NegativeStock | ReservationNotActive | ReservationExists


# ═══════════════════════════════════════════════════════════════════════════════
# Reports
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StockValidation:
    available: bool
    available_quantity: int
    message: str | None = None


@dataclass(frozen=True, slots=True)
class StockAlert:
    stock_id: int
    sku: SkuRef
    type: AlertType
    severity: Severity
    available_stock: int
    min_stock_level: int


@dataclass(frozen=True, slots=True)
class StockSummary:
    total_items: int
    low_stock_items: int
    out_of_stock_items: int
    recent_movements: int


__all__ = (
    "MovementType",
    "StockStatus",
    "ReservationState",
    "AlertType",
    "Severity",
    "StockItem",
    "StockMovement",
    "ReservationLine",
    "Reservation",
    "StockDelta",
    "StockChange",
    "NegativeStock",
    "ReservationNotActive",
    "ReservationExists",
    "ApplyConflict",
    "StockValidation",
    "StockAlert",
    "StockSummary",
)
