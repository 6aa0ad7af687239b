"""
Back-office HTTP app.

    app = build_app(orders=orders, ledger=ledger, payments=payments)
    # uvicorn storefront.admin:app --factory ... or mount into a larger app
"""

from __future__ import annotations

import fastapi

from storefront import wire as W
from storefront.admin._ops import admin_runner
from storefront.admin._schemas import (
    OrderOut,
    OrderStatusIn,
    PaymentActionIn,
    PaymentOut,
    PaymentSummaryIn,
    PaymentSummaryOut,
    RefundIn,
    RefundOut,
    StockAdjustmentIn,
    StockAlertsIn,
    StockAlertsOut,
    StockItemOut,
    StockMovementIn,
    StockSummaryIn,
    StockSummaryOut,
)
from storefront.orders import OrderLifecycle
from storefront.payments import PaymentLifecycle
from storefront.stock import StockLedger


def build_app(*, orders: OrderLifecycle, ledger: StockLedger, payments: PaymentLifecycle) -> fastapi.FastAPI:
    runner = admin_runner(orders=orders, ledger=ledger, payments=payments)
    endp = (
        W.endpoint(runner)
        .expose(W.HTTPRouteTrigger("POST", "/admin/orders/status"), W.RequestResponseCodec(OrderStatusIn, OrderOut))
        .expose(
            W.HTTPRouteTrigger("POST", "/admin/stock/adjustments"),
            W.RequestResponseCodec(StockAdjustmentIn, StockItemOut),
        )
        .expose(
            W.HTTPRouteTrigger("POST", "/admin/stock/movements"),
            W.RequestResponseCodec(StockMovementIn, StockItemOut),
        )
        .expose(W.HTTPRouteTrigger("GET", "/admin/stock/summary"), W.RequestResponseCodec(StockSummaryIn, StockSummaryOut))
        .expose(W.HTTPRouteTrigger("GET", "/admin/stock/alerts"), W.RequestResponseCodec(StockAlertsIn, StockAlertsOut))
        .expose(W.HTTPRouteTrigger("POST", "/admin/payments/refunds"), W.RequestResponseCodec(RefundIn, RefundOut))
        .expose(
            W.HTTPRouteTrigger("POST", "/admin/payments/actions"),
            W.RequestResponseCodec(PaymentActionIn, PaymentOut),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/admin/payments/summary"),
            W.RequestResponseCodec(PaymentSummaryIn, PaymentSummaryOut),
        )
    )
    return W.from_application(W.application().mount(endp), title="storefront admin")


__all__ = ("build_app",)
