"""
Payment types — methods, statuses, records, gateway messages, redirect instructions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from storefront._types import ZERO, Money, utcnow


# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethod(StrEnum):
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    CREDIT_CARD = "CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    VIETTEL_MONEY = "VIETTEL_MONEY"
    MOMO = "MOMO"
    ZALOPAY = "ZALOPAY"
    VNPAY = "VNPAY"


class PaymentStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class RedirectStyle(StrEnum):
    """How control is handed to the wallet. NONE: no external call at all."""

    NONE = "NONE"
    WEB = "WEB"
    QR = "QR"
    DEEPLINK = "DEEPLINK"


class PaymentAction(StrEnum):
    """Back-office decisions on a payment."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REFUND = "REFUND"


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Choice — the two axes behind a selection
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PaymentChoice:
    method: PaymentMethod
    redirect_style: RedirectStyle

    @property
    def is_wallet(self) -> bool:
        return self.redirect_style != RedirectStyle.NONE


# ═══════════════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Payment:
    """
    One payment attempt for one order. ``amount`` equals the order total
    when the attempt is opened.
    """

    id: str
    order_id: str
    amount: Money
    currency: str
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str | None = None
    failure_reason: str | None = None
    refunded_amount: Money = ZERO
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def refundable(self) -> Money:
        return self.amount - self.refunded_amount


@dataclass(frozen=True, slots=True)
class Refund:
    id: str
    payment_id: str
    amount: Money
    reason: str
    actor: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class PaymentSummary:
    total_payments: int
    successful: int
    failed: int
    pending: int
    settled_amount: Money
    refunded_amount: Money
    average_transaction: Money


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway Messages
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class InitiationRequest:
    order_id: str
    amount: Money
    currency: str
    return_type: RedirectStyle
    return_url: str


@dataclass(frozen=True, slots=True)
class InitiationResponse:
    success: bool
    payment_url: str | None = None
    qr_code: str | None = None
    message: str | None = None
    transaction_id: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Redirect Instruction — what the dispatcher tells checkout to do next
# ═══════════════════════════════════════════════════════════════════════════════


class InstructionKind(StrEnum):
    SUCCESS = "SUCCESS"
    NAVIGATE = "NAVIGATE"
    SHOW_QR = "SHOW_QR"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class RedirectInstruction:
    kind: InstructionKind
    order_id: str
    message: str | None = None
    url: str | None = None
    qr_code: str | None = None
    retryable: bool = False
    transaction_id: str | None = None

    @classmethod
    def success(cls, order_id: str, message: str, *, transaction_id: str | None = None) -> RedirectInstruction:
        return cls(InstructionKind.SUCCESS, order_id, message=message, transaction_id=transaction_id)

    @classmethod
    def navigate(cls, order_id: str, url: str, *, transaction_id: str | None = None) -> RedirectInstruction:
        return cls(InstructionKind.NAVIGATE, order_id, url=url, transaction_id=transaction_id)

    @classmethod
    def show_qr(
        cls, order_id: str, code: str, message: str, *, transaction_id: str | None = None,
    ) -> RedirectInstruction:
        return cls(InstructionKind.SHOW_QR, order_id, message=message, qr_code=code, transaction_id=transaction_id)

    @classmethod
    def error(cls, order_id: str, message: str) -> RedirectInstruction:
        return cls(InstructionKind.ERROR, order_id, message=message, retryable=True)

    @property
    def is_error(self) -> bool:
        return self.kind == InstructionKind.ERROR


__all__ = (
    "PaymentMethod",
    "PaymentStatus",
    "RedirectStyle",
    "PaymentAction",
    "PaymentChoice",
    "Payment",
    "Refund",
    "PaymentSummary",
    "InitiationRequest",
    "InitiationResponse",
    "InstructionKind",
    "RedirectInstruction",
)
