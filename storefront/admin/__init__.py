"""
Admin — back-office commands and their HTTP surface.

    from storefront import admin as A

    app = A.build_app(orders=orders, ledger=ledger, payments=payments)

    runner = A.admin_runner(orders=orders, ledger=ledger, payments=payments)
    await runner.run(A.AdjustStock(stock_id=3, quantity=10, reason="restock"))
"""

from storefront.admin._ops import (
    ADMIN_ACTOR,
    UpdateOrderStatus,
    AdjustStock,
    RecordStockMovement,
    GetStockSummary,
    ListStockAlerts,
    RefundPayment,
    ProcessPayment,
    GetPaymentSummary,
    admin_runner,
)
from storefront.admin._schemas import (
    OrderStatusIn,
    OrderOut,
    StockAdjustmentIn,
    StockMovementIn,
    StockItemOut,
    StockSummaryIn,
    StockSummaryOut,
    StockAlertsIn,
    StockAlertOut,
    StockAlertsOut,
    RefundIn,
    RefundOut,
    PaymentActionIn,
    PaymentOut,
    PaymentSummaryIn,
    PaymentSummaryOut,
)
from storefront.admin._app import build_app

__all__ = (
    "ADMIN_ACTOR",
    "UpdateOrderStatus",
    "AdjustStock",
    "RecordStockMovement",
    "GetStockSummary",
    "ListStockAlerts",
    "RefundPayment",
    "ProcessPayment",
    "GetPaymentSummary",
    "admin_runner",
    "OrderStatusIn",
    "OrderOut",
    "StockAdjustmentIn",
    "StockMovementIn",
    "StockItemOut",
    "StockSummaryIn",
    "StockSummaryOut",
    "StockAlertsIn",
    "StockAlertOut",
    "StockAlertsOut",
    "RefundIn",
    "RefundOut",
    "PaymentActionIn",
    "PaymentOut",
    "PaymentSummaryIn",
    "PaymentSummaryOut",
    "build_app",
)
