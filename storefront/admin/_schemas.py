"""
HTTP request and response models for the back office.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Literal

from kungfu import Result
from pydantic import BaseModel, Field, field_validator

from storefront.admin._ops import (
    AdjustStock,
    GetPaymentSummary,
    GetStockSummary,
    ListStockAlerts,
    ProcessPayment,
    RecordStockMovement,
    RefundPayment,
    UpdateOrderStatus,
)
from storefront.orders import Order, OrderStatus
from storefront.payments import Payment, PaymentAction, PaymentStatus, PaymentSummary, Refund
from storefront.stock import (
    AlertType,
    MovementType,
    Severity,
    StockAlert,
    StockItem,
    StockStatus,
    StockSummary,
)
from storefront.wire import unwrap_or_raise


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatusIn(BaseModel):
    order_id: str
    new_status: OrderStatus
    reason: str | None = None

    def to_domain(self) -> UpdateOrderStatus:
        return UpdateOrderStatus(self.order_id, self.new_status, reason=self.reason)


class OrderOut(BaseModel):
    id: str
    status: OrderStatus
    payment_status: PaymentStatus
    total_price: Decimal
    updated_at: datetime

    @classmethod
    def from_domain(cls, dom: Result[Order, object]) -> OrderOut:
        order = unwrap_or_raise(dom)
        return cls(
            id=order.id,
            status=order.status,
            payment_status=order.payment_status,
            total_price=order.total_price,
            updated_at=order.updated_at,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Stock
# ═══════════════════════════════════════════════════════════════════════════════


# Reservation, release and outbound movements come from the order flow only.
ManualMovement = Literal[MovementType.IN, MovementType.RETURNED, MovementType.DAMAGED]


class StockAdjustmentIn(BaseModel):
    stock_id: int
    quantity: int = Field(description="signed delta applied to available stock")
    reason: str = Field(min_length=1)
    reference: str | None = None

    @field_validator("quantity")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("adjustment must change stock")
        return value

    def to_domain(self) -> AdjustStock:
        return AdjustStock(self.stock_id, self.quantity, self.reason, reference=self.reference)


class StockMovementIn(BaseModel):
    stock_id: int
    type: ManualMovement
    quantity: int = Field(ge=1)
    reason: str = Field(min_length=1)
    reference: str | None = None

    def to_domain(self) -> RecordStockMovement:
        return RecordStockMovement(self.stock_id, self.type, self.quantity, self.reason, reference=self.reference)


class StockItemOut(BaseModel):
    id: int
    product_id: int
    variation_id: int | None
    available_stock: int
    reserved_stock: int
    min_stock_level: int
    status: StockStatus

    @classmethod
    def of(cls, item: StockItem) -> StockItemOut:
        return cls(
            id=item.id,
            product_id=item.sku.product_id,
            variation_id=item.sku.variation_id,
            available_stock=item.available_stock,
            reserved_stock=item.reserved_stock,
            min_stock_level=item.min_stock_level,
            status=item.status,
        )

    @classmethod
    def from_domain(cls, dom: Result[StockItem, object]) -> StockItemOut:
        return cls.of(unwrap_or_raise(dom))


class StockSummaryIn(BaseModel):
    window_hours: int = Field(default=24, ge=1)

    def to_domain(self) -> GetStockSummary:
        return GetStockSummary(window=timedelta(hours=self.window_hours))


class StockSummaryOut(BaseModel):
    total_items: int
    low_stock_items: int
    out_of_stock_items: int
    recent_movements: int

    @classmethod
    def from_domain(cls, dom: Result[StockSummary, object]) -> StockSummaryOut:
        s = unwrap_or_raise(dom)
        return cls(
            total_items=s.total_items,
            low_stock_items=s.low_stock_items,
            out_of_stock_items=s.out_of_stock_items,
            recent_movements=s.recent_movements,
        )


class StockAlertsIn(BaseModel):
    severity: Severity | None = None

    def to_domain(self) -> ListStockAlerts:
        return ListStockAlerts(self.severity)


class StockAlertOut(BaseModel):
    stock_id: int
    product_id: int
    variation_id: int | None
    type: AlertType
    severity: Severity
    available_stock: int
    min_stock_level: int


class StockAlertsOut(BaseModel):
    alerts: list[StockAlertOut]

    @classmethod
    def from_domain(cls, dom: Result[tuple[StockAlert, ...], object]) -> StockAlertsOut:
        return cls(alerts=[
            StockAlertOut(
                stock_id=a.stock_id,
                product_id=a.sku.product_id,
                variation_id=a.sku.variation_id,
                type=a.type,
                severity=a.severity,
                available_stock=a.available_stock,
                min_stock_level=a.min_stock_level,
            )
            for a in unwrap_or_raise(dom)
        ])


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


class RefundIn(BaseModel):
    payment_id: str
    amount: Decimal = Field(gt=0)
    reason: str = Field(min_length=1)

    def to_domain(self) -> RefundPayment:
        return RefundPayment(self.payment_id, self.amount, self.reason)


class RefundOut(BaseModel):
    id: str
    payment_id: str
    amount: Decimal
    reason: str
    created_at: datetime

    @classmethod
    def from_domain(cls, dom: Result[Refund, object]) -> RefundOut:
        r = unwrap_or_raise(dom)
        return cls(id=r.id, payment_id=r.payment_id, amount=r.amount, reason=r.reason, created_at=r.created_at)


class PaymentActionIn(BaseModel):
    payment_id: str
    action: PaymentAction
    amount: Decimal | None = Field(default=None, gt=0)
    reason: str = ""

    def to_domain(self) -> ProcessPayment:
        return ProcessPayment(self.payment_id, self.action, amount=self.amount, reason=self.reason)


class PaymentOut(BaseModel):
    id: str
    order_id: str
    amount: Decimal
    status: PaymentStatus
    refunded_amount: Decimal
    transaction_id: str | None

    @classmethod
    def from_domain(cls, dom: Result[Payment, object]) -> PaymentOut:
        p = unwrap_or_raise(dom)
        return cls(
            id=p.id,
            order_id=p.order_id,
            amount=p.amount,
            status=p.status,
            refunded_amount=p.refunded_amount,
            transaction_id=p.transaction_id,
        )


class PaymentSummaryIn(BaseModel):
    def to_domain(self) -> GetPaymentSummary:
        return GetPaymentSummary()


class PaymentSummaryOut(BaseModel):
    total_payments: int
    successful: int
    failed: int
    pending: int
    settled_amount: Decimal
    refunded_amount: Decimal
    average_transaction: Decimal

    @classmethod
    def from_domain(cls, dom: Result[PaymentSummary, object]) -> PaymentSummaryOut:
        s = unwrap_or_raise(dom)
        return cls(
            total_payments=s.total_payments,
            successful=s.successful,
            failed=s.failed,
            pending=s.pending,
            settled_amount=s.settled_amount,
            refunded_amount=s.refunded_amount,
            average_transaction=s.average_transaction,
        )


__all__ = (
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
)
