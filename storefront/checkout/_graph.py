"""
Checkout graph — one submission as nodnod nodes.

    CheckoutContext (injected)
         │
         ▼
    ValidatedItems ──► OrderDraft ──► PlacedOrder ──► CartCleared ──► Dispatched
                                      (saga: reserve,
                                       order, payment)

Each arrow is a data dependency, so validation happens before the order
exists, the order before dispatch. Validation failures raise
InvalidItemsError out of the graph; PlacedOrder runs reservation and order
creation as one compensated unit.

Runtime annotations stay (no ``from __future__``): nodnod reads them.
"""

import logging
from dataclasses import dataclass

from kungfu import Error, LazyCoroResult, Ok, Result

from storefront import graph as G
from storefront import saga as S
from storefront._types import Identity
from storefront.cart import CartItem, CartStore
from storefront.checkout._form import ShippingForm
from storefront.errors import InsufficientStockError, InvalidItem, InvalidItemsError
from storefront.orders import Order, OrderItem, OrderLifecycle, OrderStatus
from storefront.payments import (
    Payment,
    PaymentChoice,
    PaymentDispatcher,
    PaymentLifecycle,
    PaymentStatus,
    RedirectInstruction,
)
from storefront.stock import Reservation, StockLedger

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CheckoutContext:
    identity: Identity
    items: tuple[CartItem, ...]
    form: ShippingForm
    choice: PaymentChoice
    cart: CartStore
    ledger: StockLedger
    orders: OrderLifecycle
    payments: PaymentLifecycle
    dispatcher: PaymentDispatcher


@dataclass(frozen=True)
class Submission:
    """What a completed submission produced; replayed as-is to a duplicate."""

    order: Order
    payment: Payment
    instruction: RedirectInstruction


# ═══════════════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class ValidatedItems:
    def __init__(self, items: tuple[CartItem, ...]) -> None:
        self.items = items

    @classmethod
    async def __compose__(cls, ctx: CheckoutContext) -> "ValidatedItems":
        invalid = await ctx.ledger.validate_lines((i.sku, i.quantity) for i in ctx.items)
        if invalid:
            logger.info("checkout for %s refused: %d invalid item(s)", ctx.identity.email, len(invalid))
            raise InvalidItemsError(invalid)
        return cls(ctx.items)


@G.node
class OrderDraft:
    def __init__(self, order: Order) -> None:
        self.order = order

    @classmethod
    def __compose__(cls, ctx: CheckoutContext, validated: ValidatedItems) -> "OrderDraft":
        return cls(Order.create(
            user_id=ctx.identity.user_id,
            user_email=ctx.identity.email,
            address=ctx.form.address,
            phone=ctx.form.phone,
            note=ctx.form.note,
            items=tuple(
                OrderItem(
                    product_id=i.sku.product_id,
                    variation_id=i.sku.variation_id,
                    product_name=i.product_name,
                    product_image=i.product_image,
                    quantity=i.quantity,
                    price=i.unit_price,
                )
                for i in validated.items
            ),
            payment_method=ctx.choice.method,
        ))


@G.node
class PlacedOrder:
    """Reserve stock, persist the order, open its payment; undo all on failure."""

    def __init__(self, order: Order, payment: Payment) -> None:
        self.order = order
        self.payment = payment

    @classmethod
    async def __compose__(cls, ctx: CheckoutContext, draft: OrderDraft) -> "PlacedOrder":
        order = draft.order
        actor = ctx.identity.email

        async def persist() -> Result[Order, InsufficientStockError]:
            return Ok(await ctx.orders.open(order))

        async def open_payment(saved: Order) -> Result[tuple[Order, Payment], InsufficientStockError]:
            return Ok((saved, await ctx.payments.open_attempt(saved)))

        async def release(_: Reservation) -> None:
            await ctx.ledger.release(order.id, actor=actor)

        async def withdraw(_: Order) -> None:
            await ctx.orders.transition(order.id, OrderStatus.CANCELLED, actor=actor, reason="checkout abandoned")

        placement = (
            S.step(
                LazyCoroResult(lambda: ctx.ledger.reserve(order.id, order.reservation_lines, actor=actor)),
                compensate=release,
                name="reserve",
            )
            .then(lambda _: S.step(LazyCoroResult(persist), compensate=withdraw, name="order"))
            .then(lambda saved: S.step(LazyCoroResult(lambda: open_payment(saved)), name="payment"))
        )

        match await S.run(placement):
            case Ok(done):
                saved, payment = done.value
                return cls(saved, payment)
            case Error(S.SagaError(error=InsufficientStockError(shortages=shortages))):
                raise InvalidItemsError(tuple(
                    InvalidItem(
                        s.sku,
                        "Out of stock" if s.available == 0 else f"Only {s.available} left in stock",
                        s.available,
                    )
                    for s in shortages
                ))
            case Error(failure):
                raise failure.error


@G.node
class CartCleared:
    def __init__(self, removed: int) -> None:
        self.removed = removed

    @classmethod
    def __compose__(cls, ctx: CheckoutContext, placed: PlacedOrder) -> "CartCleared":
        skus = tuple(i.sku for i in ctx.items)
        ctx.cart.remove_lines(skus)
        return cls(len(skus))


@G.node
class Dispatched:
    def __init__(self, submission: Submission) -> None:
        self.submission = submission

    @classmethod
    async def __compose__(
        cls,
        ctx: CheckoutContext,
        placed: PlacedOrder,
        cleared: CartCleared,
    ) -> "Dispatched":
        _ = cleared
        return cls(await dispatch_payment(ctx.dispatcher, ctx.payments, placed.order, placed.payment, ctx.choice))


async def dispatch_payment(
    dispatcher: PaymentDispatcher,
    payments: PaymentLifecycle,
    order: Order,
    payment: Payment,
    choice: PaymentChoice,
) -> Submission:
    """Dispatch, then record a started wallet payment as PROCESSING."""
    instruction = await dispatcher.dispatch(order, choice)
    if choice.is_wallet and not instruction.is_error and payment.status == PaymentStatus.PENDING:
        payment = await payments.mark_processing(payment.id, instruction.transaction_id)
    return Submission(order, payment, instruction)


CHECKOUT = G.graph(Dispatched)


async def place(ctx: CheckoutContext) -> Result[Submission, InvalidItemsError]:
    try:
        done = await CHECKOUT.run().inject(ctx)
    except InvalidItemsError as exc:
        return Error(exc)
    return Ok(done.submission)


__all__ = (
    "CheckoutContext",
    "Submission",
    "ValidatedItems",
    "OrderDraft",
    "PlacedOrder",
    "CartCleared",
    "Dispatched",
    "dispatch_payment",
    "CHECKOUT",
    "place",
)
