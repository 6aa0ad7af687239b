"""
Error taxonomy.

Recoverable errors travel inside ``Error(...)`` and are turned into user-facing
messages at the orchestrator or HTTP boundary. Integrity violations and illegal
transitions are raised and propagate to the top-level handler.

    StorefrontError
    ├── ValidationError          (no mutation happened)
    ├── StockConflictError       (reservation lost the race)
    ├── AuthenticationError      (redirect to sign-in)
    ├── NotFoundError
    ├── GatewayError             (order exists, offer retry)
    ├── SubmissionInProgressError
    ├── InvalidTransitionError   (programming/integrity error)
    └── IntegrityError           (fatal for the operation)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from storefront._types import Money, SkuRef


class StorefrontError(Exception):
    """Base class for every storefront error."""


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


class ValidationError(StorefrontError):
    """Input rejected before any state changed."""


class EmptyCartError(ValidationError):
    def __init__(self) -> None:
        super().__init__("No items selected for checkout")


@dataclass(frozen=True, slots=True)
class InvalidItem:
    """One cart line that cannot be checked out."""

    sku: SkuRef
    reason: str
    available_quantity: int = 0


class InvalidItemsError(ValidationError):
    def __init__(self, items: tuple[InvalidItem, ...]) -> None:
        self.items = items
        names = "; ".join(f"{i.sku}: {i.reason}" for i in items)
        super().__init__(f"Some items cannot be ordered: {names}")


class InvalidShippingFormError(ValidationError):
    """Field-scoped form errors, keyed by field name."""

    def __init__(self, fields: Mapping[str, str]) -> None:
        self.fields = dict(fields)
        super().__init__(", ".join(f"{k}: {v}" for k, v in self.fields.items()))


class UnknownPaymentSelectionError(ValidationError):
    def __init__(self, selection: str) -> None:
        self.selection = selection
        super().__init__(f"Unknown payment selection: {selection!r}")


class InvalidAdjustmentError(ValidationError):
    def __init__(self, stock_id: int, delta: int, available: int) -> None:
        self.stock_id = stock_id
        self.delta = delta
        self.available = available
        super().__init__(
            f"Adjustment {delta:+d} on stock {stock_id} would leave "
            f"{available + delta} available"
        )


class RefundError(ValidationError):
    def __init__(self, payment_id: str, message: str) -> None:
        self.payment_id = payment_id
        super().__init__(message)


class RefundNotAllowedError(RefundError):
    def __init__(self, payment_id: str, status: str) -> None:
        self.status = status
        super().__init__(payment_id, f"Payment {payment_id} is {status}; refunds need a settled payment")


class RefundExceedsPaymentError(RefundError):
    def __init__(self, payment_id: str, requested: Money, refundable: Money) -> None:
        self.requested = requested
        self.refundable = refundable
        super().__init__(
            payment_id,
            f"Refund of {requested} exceeds the {refundable} still refundable on {payment_id}",
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Stock Conflict
# ═══════════════════════════════════════════════════════════════════════════════


class StockConflictError(StorefrontError):
    """Stock changed under us; the user can adjust the cart and retry."""


@dataclass(frozen=True, slots=True)
class Shortage:
    sku: SkuRef
    requested: int
    available: int

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class InsufficientStockError(StockConflictError):
    def __init__(self, shortages: tuple[Shortage, ...]) -> None:
        self.shortages = shortages
        super().__init__(
            "; ".join(f"{s.sku}: short by {s.shortfall}" for s in shortages)
        )

    @property
    def sku(self) -> SkuRef:
        return self.shortages[0].sku

    @property
    def shortfall(self) -> int:
        return self.shortages[0].shortfall


# ═══════════════════════════════════════════════════════════════════════════════
# Authentication / Lookup
# ═══════════════════════════════════════════════════════════════════════════════


class AuthenticationError(StorefrontError):
    pass


class UnauthenticatedError(AuthenticationError):
    def __init__(self) -> None:
        super().__init__("Sign in to place an order")


class NotOrderOwnerError(AuthenticationError):
    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} belongs to another customer")


class NotFoundError(StorefrontError):
    def __init__(self, entity: str, key: object) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway / Submission
# ═══════════════════════════════════════════════════════════════════════════════


class GatewayError(StorefrontError):
    """Payment-initiation collaborator failed or timed out."""


class PaymentDispatchError(GatewayError):
    """The order exists and stock stays reserved; payment can be retried."""

    def __init__(self, order_id: str, message: str, *, retryable: bool = True) -> None:
        self.order_id = order_id
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class SubmissionInProgressError(StorefrontError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__("A checkout submission is already in progress")


# ═══════════════════════════════════════════════════════════════════════════════
# Transitions / Integrity
# ═══════════════════════════════════════════════════════════════════════════════


class InvalidTransitionError(StorefrontError):
    def __init__(self, entity: str, entity_id: str, current: str, target: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(f"{entity} {entity_id}: cannot move from {current} to {target}")


class CancellationNotAllowedError(InvalidTransitionError):
    """Customer-initiated cancel outside the customer-cancellable statuses."""

    def __init__(self, order_id: str, current: str) -> None:
        super().__init__("order", order_id, current, "CANCELLED")


class IntegrityError(StorefrontError):
    """Stored state contradicts an invariant. Never recovered from."""


class LedgerCorruptionError(IntegrityError):
    def __init__(self, stock_id: int, detail: str) -> None:
        self.stock_id = stock_id
        super().__init__(f"Stock {stock_id}: {detail}")


# ═══════════════════════════════════════════════════════════════════════════════
# Union
# ═══════════════════════════════════════════════════════════════════════════════

type CheckoutError = (
    EmptyCartError
    | UnauthenticatedError
    | InvalidItemsError
    | SubmissionInProgressError
    | PaymentDispatchError
)

__all__ = (
    "StorefrontError",
    "ValidationError",
    "EmptyCartError",
    "InvalidItem",
    "InvalidItemsError",
    "InvalidShippingFormError",
    "UnknownPaymentSelectionError",
    "InvalidAdjustmentError",
    "RefundError",
    "RefundNotAllowedError",
    "RefundExceedsPaymentError",
    "StockConflictError",
    "Shortage",
    "InsufficientStockError",
    "AuthenticationError",
    "UnauthenticatedError",
    "NotOrderOwnerError",
    "NotFoundError",
    "GatewayError",
    "PaymentDispatchError",
    "SubmissionInProgressError",
    "InvalidTransitionError",
    "CancellationNotAllowedError",
    "IntegrityError",
    "LedgerCorruptionError",
    "CheckoutError",
)
