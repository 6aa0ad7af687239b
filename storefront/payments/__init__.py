"""
Payments — lifecycle, refunds, and dispatch to the wallet gateway.

    from storefront import payments as P

    choice = P.SELECTIONS["viettel_money_qr"]
    instruction = await dispatcher.dispatch(order, choice)
    await lifecycle.refund(payment_id, Decimal("50000"), "damaged on arrival")
"""

from storefront.payments._types import (
    PaymentMethod,
    PaymentStatus,
    RedirectStyle,
    PaymentAction,
    PaymentChoice,
    Payment,
    Refund,
    PaymentSummary,
    InitiationRequest,
    InitiationResponse,
    InstructionKind,
    RedirectInstruction,
)
from storefront.payments._transitions import (
    PAYMENT_TRANSITIONS,
    OPEN,
    REFUNDABLE,
    ensure_payment_transition,
)
from storefront.payments._repo import PaymentRepository, MemoryPaymentRepository
from storefront.payments._gateway import PaymentGateway
from storefront.payments._lifecycle import PaymentLifecycle
from storefront.payments._dispatch import (
    SELECTIONS,
    resolve_selection,
    PaymentDispatcher,
    COD_MESSAGE,
    WEB_MANUAL_MESSAGE,
    QR_WAITING_MESSAGE,
    OPEN_WALLET_MESSAGE,
    RETRY_MESSAGE,
)

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
    "PAYMENT_TRANSITIONS",
    "OPEN",
    "REFUNDABLE",
    "ensure_payment_transition",
    "PaymentRepository",
    "MemoryPaymentRepository",
    "PaymentGateway",
    "PaymentLifecycle",
    "SELECTIONS",
    "resolve_selection",
    "PaymentDispatcher",
    "COD_MESSAGE",
    "WEB_MANUAL_MESSAGE",
    "QR_WAITING_MESSAGE",
    "OPEN_WALLET_MESSAGE",
    "RETRY_MESSAGE",
)
