"""
Back-office commands and their handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Never

from kungfu import Ok, Result

from storefront import ops as O
from storefront._types import Money
from storefront.errors import InvalidAdjustmentError, RefundError
from storefront.orders import Order, OrderLifecycle, OrderStatus
from storefront.payments import Payment, PaymentAction, PaymentLifecycle, PaymentSummary, Refund
from storefront.stock import MovementType, Severity, StockAlert, StockItem, StockLedger, StockSummary

ADMIN_ACTOR = "admin"


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class UpdateOrderStatus(O.Returning[Order, Never]):
    """Illegal moves raise InvalidTransitionError; they are never returned."""

    order_id: str
    status: OrderStatus
    reason: str | None = None
    actor: str = ADMIN_ACTOR


async def update_order_status(req: UpdateOrderStatus, orders: OrderLifecycle) -> Result[Order, Never]:
    return Ok(await orders.transition(req.order_id, req.status, actor=req.actor, reason=req.reason))


# ═══════════════════════════════════════════════════════════════════════════════
# Stock
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AdjustStock(O.Returning[StockItem, InvalidAdjustmentError]):
    stock_id: int
    quantity: int
    reason: str
    reference: str | None = None
    actor: str = ADMIN_ACTOR


async def adjust_stock(req: AdjustStock, ledger: StockLedger) -> Result[StockItem, InvalidAdjustmentError]:
    return await ledger.adjust(req.stock_id, req.quantity, req.reason, reference=req.reference, actor=req.actor)


@dataclass(frozen=True, slots=True)
class RecordStockMovement(O.Returning[StockItem, InvalidAdjustmentError]):
    stock_id: int
    type: MovementType
    quantity: int
    reason: str
    reference: str | None = None
    actor: str = ADMIN_ACTOR


async def record_stock_movement(
    req: RecordStockMovement,
    ledger: StockLedger,
) -> Result[StockItem, InvalidAdjustmentError]:
    return await ledger.record(
        req.stock_id, req.type, req.quantity, req.reason, reference=req.reference, actor=req.actor,
    )


@dataclass(frozen=True, slots=True)
class GetStockSummary(O.Returning[StockSummary, Never]):
    window: timedelta = timedelta(hours=24)


async def get_stock_summary(req: GetStockSummary, ledger: StockLedger) -> Result[StockSummary, Never]:
    return Ok(await ledger.summary(window=req.window))


@dataclass(frozen=True, slots=True)
class ListStockAlerts(O.Returning[tuple[StockAlert, ...], Never]):
    severity: Severity | None = None


async def list_stock_alerts(req: ListStockAlerts, ledger: StockLedger) -> Result[tuple[StockAlert, ...], Never]:
    alerts = await ledger.alerts()
    return Ok(tuple(a for a in alerts if req.severity is None or a.severity == req.severity))


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RefundPayment(O.Returning[Refund, RefundError]):
    payment_id: str
    amount: Money
    reason: str
    actor: str = ADMIN_ACTOR


async def refund_payment(req: RefundPayment, payments: PaymentLifecycle) -> Result[Refund, RefundError]:
    return await payments.refund(req.payment_id, req.amount, req.reason, actor=req.actor)


@dataclass(frozen=True, slots=True)
class ProcessPayment(O.Returning[Payment, RefundError]):
    payment_id: str
    action: PaymentAction
    amount: Money | None = None
    reason: str = ""
    actor: str = ADMIN_ACTOR


async def process_payment(req: ProcessPayment, payments: PaymentLifecycle) -> Result[Payment, RefundError]:
    return await payments.process(
        req.payment_id, req.action, amount=req.amount, reason=req.reason, actor=req.actor,
    )


@dataclass(frozen=True, slots=True)
class GetPaymentSummary(O.Returning[PaymentSummary, Never]):
    pass


async def get_payment_summary(req: GetPaymentSummary, payments: PaymentLifecycle) -> Result[PaymentSummary, Never]:
    return Ok(await payments.summary())


# ═══════════════════════════════════════════════════════════════════════════════
# Runner
# ═══════════════════════════════════════════════════════════════════════════════


def admin_runner(*, orders: OrderLifecycle, ledger: StockLedger, payments: PaymentLifecycle) -> O.Runner:
    return (
        O.ops()
        .on(UpdateOrderStatus, update_order_status)
        .on(AdjustStock, adjust_stock)
        .on(RecordStockMovement, record_stock_movement)
        .on(GetStockSummary, get_stock_summary)
        .on(ListStockAlerts, list_stock_alerts)
        .on(RefundPayment, refund_payment)
        .on(ProcessPayment, process_payment)
        .on(GetPaymentSummary, get_payment_summary)
        .compile()
        .inject(OrderLifecycle, orders)
        .inject(StockLedger, ledger)
        .inject(PaymentLifecycle, payments)
    )


__all__ = (
    "ADMIN_ACTOR",
    "UpdateOrderStatus",
    "update_order_status",
    "AdjustStock",
    "adjust_stock",
    "RecordStockMovement",
    "record_stock_movement",
    "GetStockSummary",
    "get_stock_summary",
    "ListStockAlerts",
    "list_stock_alerts",
    "RefundPayment",
    "refund_payment",
    "ProcessPayment",
    "process_payment",
    "GetPaymentSummary",
    "get_payment_summary",
    "admin_runner",
)
