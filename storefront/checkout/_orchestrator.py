"""
Checkout orchestrator — the one entry point that turns a cart selection into
an order and a payment hand-off.

    checkout = CheckoutOrchestrator(ledger=..., orders=..., payments=..., dispatcher=...)

    match await checkout.submit(session, form, P.SELECTIONS["viettel_money_qr"]):
        case Ok(OrderResult(navigation=nav)):
            redirect(nav.target)
        case Error(InvalidItemsError(items=items)):
            show(items)
        case Error(PaymentDispatchError(order_id=order_id)):
            offer_retry(order_id)

Preconditions are checked in order (empty selection, then identity) before
anything is touched. The rest runs under the submission guard keyed by the
customer's email, so a duplicate of an in-flight or just-completed
submission never places a second order.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from kungfu import Error, Ok, Result

from storefront._types import Identity
from storefront.cart import CartItem
from storefront.checkout._form import ShippingForm
from storefront.checkout._graph import CheckoutContext, Submission, dispatch_payment, place
from storefront.checkout._navigation import Navigation, navigation_for
from storefront.config import Settings
from storefront.errors import (
    CheckoutError,
    EmptyCartError,
    IntegrityError,
    NotOrderOwnerError,
    PaymentDispatchError,
    SubmissionInProgressError,
    UnauthenticatedError,
)
from storefront.guard import (
    Guard,
    Guarded,
    GuardError,
    GuardErrorKind,
    MemorySubmissionStore,
    Policy,
    SubmissionStore,
)
from storefront.orders import Order, OrderLifecycle, OrderStatus
from storefront.payments import (
    RETRY_MESSAGE,
    Payment,
    PaymentChoice,
    PaymentDispatcher,
    PaymentLifecycle,
    RedirectInstruction,
)
from storefront.session import Session
from storefront.stock import StockLedger

logger = logging.getLogger(__name__)

type RetryError = (
    UnauthenticatedError
    | NotOrderOwnerError
    | SubmissionInProgressError
    | PaymentDispatchError
)

_PAYABLE = frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PAYMENT_FAILED})


@dataclass(frozen=True, slots=True)
class OrderResult:
    order: Order
    payment: Payment
    instruction: RedirectInstruction
    navigation: Navigation
    replayed: bool = False


def fingerprint(items: tuple[CartItem, ...], form: ShippingForm, choice: PaymentChoice) -> str:
    """Stable digest of everything that makes two submissions the same one."""
    lines = sorted(
        (i.sku.sort_key, i.quantity, str(i.unit_price))
        for i in items
    )
    payload = repr((lines, form.address, form.phone, form.note, choice.method, choice.redirect_style))
    return hashlib.sha256(payload.encode()).hexdigest()


class CheckoutOrchestrator:
    def __init__(
        self,
        *,
        ledger: StockLedger,
        orders: OrderLifecycle,
        payments: PaymentLifecycle,
        dispatcher: PaymentDispatcher,
        settings: Settings | None = None,
        submissions: SubmissionStore | None = None,
    ) -> None:
        self._ledger = ledger
        self._orders = orders
        self._payments = payments
        self._dispatcher = dispatcher
        settings = settings or Settings()
        self._guard = Guard(
            submissions if submissions is not None else MemorySubmissionStore(),
            Policy()
            .with_ttl(delta=settings.submission_ttl)
            .with_wait(delta=settings.submission_wait)
            .with_on_duplicate(settings.on_duplicate),
        )
        self._retrying: set[str] = set()

    # ═══════════════════════════════════════════════════════════════════════
    # submit
    # ═══════════════════════════════════════════════════════════════════════

    async def submit(
        self,
        session: Session,
        form: ShippingForm,
        choice: PaymentChoice,
    ) -> Result[OrderResult, CheckoutError]:
        items = session.cart.selected()
        if not items:
            return Error(EmptyCartError())
        identity = session.identity
        if identity is None or not identity.email:
            return Error(UnauthenticatedError())

        ctx = CheckoutContext(
            identity=identity,
            items=items,
            form=form,
            choice=choice,
            cart=session.cart,
            ledger=self._ledger,
            orders=self._orders,
            payments=self._payments,
            dispatcher=self._dispatcher,
        )
        key = f"checkout:{identity.email}"
        outcome = await self._guard.run(key, fingerprint(items, form, choice), lambda: place(ctx))

        match outcome:
            case Ok(Guarded(value=submission, replayed=replayed)):
                if replayed:
                    logger.info("duplicate submission for %s answered with order %s", key, submission.order.id)
                    # the lines re-added since belong to the replayed order
                    session.cart.remove_lines(tuple(i.sku for i in items))
                return _finish(submission, replayed=replayed)
            case Error(GuardError(kind=GuardErrorKind.EXECUTION, original_error=err)):
                return Error(err)
            case Error(GuardError(kind=GuardErrorKind.STORE_ERROR, message=message)):
                raise IntegrityError(f"submission guard unavailable: {message}")
            case _:
                return Error(SubmissionInProgressError(key))

    # ═══════════════════════════════════════════════════════════════════════
    # retry_payment
    # ═══════════════════════════════════════════════════════════════════════

    async def retry_payment(
        self,
        order_id: str,
        choice: PaymentChoice,
        identity: Identity | None,
    ) -> Result[OrderResult, RetryError]:
        """
        Dispatch payment again for an order still waiting for it. A failed
        order goes back to PENDING_PAYMENT first. Never creates an order.
        """
        if identity is None or not identity.email:
            return Error(UnauthenticatedError())
        if order_id in self._retrying:
            return Error(SubmissionInProgressError(f"payment:{order_id}"))

        self._retrying.add(order_id)
        try:
            order = await self._orders.get(order_id)
            if order.user_email != identity.email:
                return Error(NotOrderOwnerError(order_id))
            if order.status not in _PAYABLE or choice.method != order.payment_method:
                logger.warning("payment retry for %s refused in %s via %s", order_id, order.status, choice.method)
                return Error(PaymentDispatchError(order_id, "This order can no longer be paid", retryable=False))

            if order.status == OrderStatus.PAYMENT_FAILED:
                order = await self._orders.transition(
                    order_id, OrderStatus.PENDING_PAYMENT, actor=identity.email, reason="payment retry",
                )
            payment = await self._payments.open_attempt(order)
            submission = await dispatch_payment(self._dispatcher, self._payments, order, payment, choice)
            return _finish(submission, replayed=False)
        finally:
            self._retrying.discard(order_id)


def _finish(submission: Submission, *, replayed: bool) -> Result[OrderResult, PaymentDispatchError]:
    instruction = submission.instruction
    if instruction.is_error:
        logger.warning("payment dispatch failed for %s; order kept for retry", submission.order.id)
        return Error(PaymentDispatchError(
            submission.order.id,
            instruction.message or RETRY_MESSAGE,
            retryable=instruction.retryable,
        ))
    return Ok(OrderResult(
        order=submission.order,
        payment=submission.payment,
        instruction=instruction,
        navigation=navigation_for(instruction),
        replayed=replayed,
    ))


__all__ = ("OrderResult", "CheckoutOrchestrator", "fingerprint", "RetryError")
