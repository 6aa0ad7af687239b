"""
Payment lifecycle — attempts, settlement, refunds.

Every payment transition is mirrored onto the order through
``OrderLifecycle.apply_payment_status``, which is also where a settled or
failed payment moves an order out of PENDING_PAYMENT.

Reacts to order events:
    order CANCELLED → open payment CANCELLED
    order DELIVERED → open cash-on-delivery payment SUCCESSFUL
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import TYPE_CHECKING

from kungfu import Error, Ok, Result

from storefront._types import ZERO, Money, new_id, utcnow
from storefront.errors import (
    NotFoundError,
    RefundError,
    RefundExceedsPaymentError,
    RefundNotAllowedError,
)
from storefront.orders._status import OrderStatus
from storefront.payments._repo import PaymentRepository
from storefront.payments._transitions import (
    OPEN,
    PAYMENT_TRANSITIONS,
    REFUNDABLE,
    ensure_payment_transition,
)
from storefront.payments._types import (
    Payment,
    PaymentAction,
    PaymentMethod,
    PaymentStatus,
    PaymentSummary,
    Refund,
)

if TYPE_CHECKING:
    from storefront.orders import Order, OrderLifecycle

logger = logging.getLogger(__name__)

_SETTLED = frozenset({PaymentStatus.SUCCESSFUL, PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED})


class PaymentLifecycle:
    def __init__(
        self,
        payments: PaymentRepository,
        orders: OrderLifecycle,
        *,
        currency: str = "VND",
    ) -> None:
        self._payments = payments
        self._orders = orders
        self._currency = currency
        orders.on_enter(OrderStatus.CANCELLED, self._cancel_open_payment)
        orders.on_enter(OrderStatus.DELIVERED, self._settle_cash_on_delivery)

    # ═══════════════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════════════

    async def get(self, payment_id: str) -> Payment:
        payment = await self._payments.get(payment_id)
        if payment is None:
            raise NotFoundError("payment", payment_id)
        return payment

    async def for_order(self, order_id: str) -> list[Payment]:
        return await self._payments.for_order(order_id)

    async def active(self, order_id: str) -> Payment | None:
        """The order's open attempt, if any. There is never more than one."""
        attempts = await self._payments.for_order(order_id)
        return next((p for p in reversed(attempts) if p.status in OPEN), None)

    async def refunds(self, payment_id: str) -> list[Refund]:
        return await self._payments.refunds(payment_id)

    # ═══════════════════════════════════════════════════════════════════════
    # Attempts and settlement
    # ═══════════════════════════════════════════════════════════════════════

    async def open_attempt(self, order: Order) -> Payment:
        """Reuse the open attempt, or open a new PENDING one for the order total."""
        current = await self.active(order.id)
        if current is not None:
            return current
        payment = await self._payments.add(Payment(
            id=new_id("pay"),
            order_id=order.id,
            amount=order.total_price,
            currency=self._currency,
            method=order.payment_method,
        ))
        await self._orders.apply_payment_status(order.id, payment.status)
        logger.info("payment %s opened for %s: %s %s", payment.id, order.id, payment.amount, payment.currency)
        return payment

    async def transition(
        self,
        payment_id: str,
        target: PaymentStatus,
        *,
        transaction_id: str | None = None,
        failure_reason: str | None = None,
        actor: str = "payment",
    ) -> Payment:
        while True:
            payment = await self.get(payment_id)
            if target not in PAYMENT_TRANSITIONS[payment.status]:
                logger.error("refused payment transition %s: %s -> %s", payment_id, payment.status, target)
            ensure_payment_transition(payment_id, payment.status, target)
            updated = replace(
                payment,
                status=target,
                transaction_id=transaction_id or payment.transaction_id,
                failure_reason=failure_reason or payment.failure_reason,
                updated_at=utcnow(),
            )
            if await self._payments.replace(updated, expected=payment):
                break

        logger.info("payment %s: %s -> %s", payment_id, payment.status, target)
        await self._orders.apply_payment_status(updated.order_id, target, actor=actor)
        return updated

    async def mark_processing(self, payment_id: str, transaction_id: str | None) -> Payment:
        return await self.transition(payment_id, PaymentStatus.PROCESSING, transaction_id=transaction_id)

    async def record_gateway_result(
        self,
        payment_id: str,
        *,
        success: bool,
        transaction_id: str | None = None,
        failure_reason: str | None = None,
        actor: str = "gateway",
    ) -> Payment:
        """Settle an attempt from the gateway's verdict (or an admin's)."""
        if not success:
            return await self.transition(
                payment_id,
                PaymentStatus.FAILED,
                failure_reason=failure_reason or "Declined by payment provider",
                actor=actor,
            )
        payment = await self.get(payment_id)
        if payment.status == PaymentStatus.PENDING:
            await self.transition(payment_id, PaymentStatus.PROCESSING, transaction_id=transaction_id, actor=actor)
        return await self.transition(
            payment_id, PaymentStatus.SUCCESSFUL, transaction_id=transaction_id, actor=actor,
        )

    # ═══════════════════════════════════════════════════════════════════════
    # Refunds
    # ═══════════════════════════════════════════════════════════════════════

    async def refund(
        self,
        payment_id: str,
        amount: Money,
        reason: str,
        *,
        actor: str = "admin",
    ) -> Result[Refund, RefundError]:
        """
        Refund part or all of a settled payment.

        Cumulative refunds never exceed the payment amount; an over-refund is
        rejected as a whole, never clamped.
        """
        if amount <= 0:
            return Error(RefundError(payment_id, "Refund amount must be positive"))

        while True:
            payment = await self.get(payment_id)
            if payment.status not in REFUNDABLE:
                return Error(RefundNotAllowedError(payment_id, payment.status.value))
            if amount > payment.refundable:
                logger.warning(
                    "refund of %s on %s rejected: only %s refundable",
                    amount, payment_id, payment.refundable,
                )
                return Error(RefundExceedsPaymentError(payment_id, amount, payment.refundable))

            refunded = payment.refunded_amount + amount
            target = PaymentStatus.REFUNDED if refunded == payment.amount else PaymentStatus.PARTIALLY_REFUNDED
            updated = replace(payment, status=target, refunded_amount=refunded, updated_at=utcnow())
            if await self._payments.replace(updated, expected=payment):
                break

        refund = await self._payments.add_refund(Refund(
            id=new_id("rfd"),
            payment_id=payment_id,
            amount=amount,
            reason=reason,
            actor=actor,
        ))
        logger.info("refunded %s on %s (%s); payment now %s", amount, payment_id, reason, target)
        await self._orders.apply_payment_status(payment.order_id, target, actor=actor)
        return Ok(refund)

    async def process(
        self,
        payment_id: str,
        action: PaymentAction,
        *,
        amount: Money | None = None,
        reason: str = "",
        actor: str = "admin",
    ) -> Result[Payment, RefundError]:
        """Back-office decision: approve, reject, or refund (whole remainder by default)."""
        match action:
            case PaymentAction.APPROVE:
                return Ok(await self.record_gateway_result(payment_id, success=True, actor=actor))
            case PaymentAction.REJECT:
                return Ok(await self.record_gateway_result(
                    payment_id, success=False, failure_reason=reason or "Rejected by staff", actor=actor,
                ))
            case PaymentAction.REFUND:
                if amount is None:
                    amount = (await self.get(payment_id)).refundable
                match await self.refund(payment_id, amount, reason or "Refund", actor=actor):
                    case Ok(_):
                        return Ok(await self.get(payment_id))
                    case Error(err):
                        return Error(err)
        raise ValueError(f"unknown payment action {action!r}")

    # ═══════════════════════════════════════════════════════════════════════
    # Reporting
    # ═══════════════════════════════════════════════════════════════════════

    async def summary(self) -> PaymentSummary:
        payments = await self._payments.all()
        settled = [p for p in payments if p.status in _SETTLED]
        settled_amount = sum((p.amount for p in settled), ZERO)
        return PaymentSummary(
            total_payments=len(payments),
            successful=len(settled),
            failed=sum(1 for p in payments if p.status == PaymentStatus.FAILED),
            pending=sum(1 for p in payments if p.status in OPEN),
            settled_amount=settled_amount,
            refunded_amount=sum((p.refunded_amount for p in payments), ZERO),
            average_transaction=settled_amount / Decimal(len(settled)) if settled else ZERO,
        )

    # ═══════════════════════════════════════════════════════════════════════
    # Order hooks
    # ═══════════════════════════════════════════════════════════════════════

    async def _cancel_open_payment(self, order: Order, previous: OrderStatus) -> None:
        current = await self.active(order.id)
        if current is not None:
            await self.transition(current.id, PaymentStatus.CANCELLED, actor="order cancelled")

    async def _settle_cash_on_delivery(self, order: Order, previous: OrderStatus) -> None:
        if order.payment_method != PaymentMethod.CASH_ON_DELIVERY:
            return
        current = await self.active(order.id)
        if current is not None:
            await self.record_gateway_result(current.id, success=True, actor="courier")


__all__ = ("PaymentLifecycle",)
