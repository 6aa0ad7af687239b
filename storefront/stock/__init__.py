"""
Stock — reservation ledger over a pluggable store.

    from storefront import stock as ST

    ledger = ST.StockLedger(ST.MemoryStockStore())
    await ledger.reserve(order_id, [(sku, 2)])
    await ledger.release(order_id)      # idempotent
    await ledger.commit(order_id)       # on delivery

SQLAlchemy-backed store: ``storefront.stock.SQLAlchemyStockStore``.
"""

from storefront.stock._types import (
    MovementType,
    StockStatus,
    ReservationState,
    AlertType,
    Severity,
    StockItem,
    StockMovement,
    ReservationLine,
    Reservation,
    StockDelta,
    StockChange,
    NegativeStock,
    ReservationNotActive,
    ReservationExists,
    ApplyConflict,
    StockValidation,
    StockAlert,
    StockSummary,
)
from storefront.stock._store import StockStore, MemoryStockStore
from storefront.stock._sqlalchemy import SQLAlchemyStockStore, create_stock_database
from storefront.stock._ledger import StockLedger, SYSTEM_ACTOR

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
    "StockStore",
    "MemoryStockStore",
    "SQLAlchemyStockStore",
    "create_stock_database",
    "StockLedger",
    "SYSTEM_ACTOR",
)
