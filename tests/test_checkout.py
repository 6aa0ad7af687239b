import asyncio
from collections.abc import Iterable
from urllib.parse import parse_qs, urlsplit

import pytest
from kungfu import Error, Ok

from storefront._types import Identity, SkuRef
from storefront.checkout import CheckoutOrchestrator, NavigationKind, OrderResult, ShippingForm
from storefront.config import Settings
from storefront.errors import (
    EmptyCartError,
    IntegrityError,
    InvalidItem,
    InvalidItemsError,
    NotOrderOwnerError,
    PaymentDispatchError,
    SubmissionInProgressError,
    UnauthenticatedError,
)
from storefront.orders import MemoryOrderRepository, Order, OrderLifecycle, OrderStatus
from storefront.payments import (
    COD_MESSAGE,
    RETRY_MESSAGE,
    SELECTIONS,
    InitiationResponse,
    InstructionKind,
    MemoryPaymentRepository,
    PaymentDispatcher,
    PaymentLifecycle,
    PaymentStatus,
)
from storefront.session import Session
from storefront.stock import MemoryStockStore, StockLedger
from tests.conftest import CUSTOMER, PRICE_A, PRICE_B, SKU_A, SKU_B, FakeGateway
from tests.test_guard import BrokenStore


async def _levels(ledger: StockLedger, sku: SkuRef) -> tuple[int, int]:
    item = await ledger.find(sku)
    assert item is not None
    return item.available_stock, item.reserved_stock


def _placed(result: object) -> OrderResult:
    match result:
        case Ok(OrderResult() as placed):
            return placed
        case other:
            pytest.fail(f"expected a placed order, got {other!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Preconditions
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_empty_selection_is_checked_before_identity(
    checkout: CheckoutOrchestrator, form: ShippingForm,
) -> None:
    match await checkout.submit(Session(), form, SELECTIONS["cod"]):
        case Error(EmptyCartError()):
            pass
        case other:
            pytest.fail(f"expected empty cart, got {other!r}")


@pytest.mark.asyncio
async def test_anonymous_checkout_touches_nothing(
    checkout: CheckoutOrchestrator, ledger: StockLedger, orders: OrderLifecycle, form: ShippingForm,
) -> None:
    anonymous = Session()
    anonymous.cart.add(SKU_A, quantity=2, unit_price=PRICE_A)

    match await checkout.submit(anonymous, form, SELECTIONS["cod"]):
        case Error(UnauthenticatedError()):
            pass
        case other:
            pytest.fail(f"expected sign-in prompt, got {other!r}")
    assert await _levels(ledger, SKU_A) == (10, 0)
    assert len(anonymous.cart) == 1


# ═══════════════════════════════════════════════════════════════════════════════
# Stock problems
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_short_line_blocks_the_whole_order(
    checkout: CheckoutOrchestrator,
    ledger: StockLedger,
    orders: OrderLifecycle,
    session: Session,
    form: ShippingForm,
) -> None:
    session.cart.add(SKU_B, quantity=3, unit_price=PRICE_B)

    match await checkout.submit(session, form, SELECTIONS["cod"]):
        case Error(InvalidItemsError(items=items)):
            assert items == (InvalidItem(SKU_B, "Only 1 left in stock", 1),)
        case other:
            pytest.fail(f"expected invalid items, got {other!r}")

    assert await orders.orders.for_user(CUSTOMER.email) == []
    assert await _levels(ledger, SKU_A) == (10, 0)
    assert await _levels(ledger, SKU_B) == (1, 0)
    assert len(session.cart) == 2


@pytest.mark.asyncio
async def test_sold_out_line_names_the_item_and_places_nothing(
    gateway: FakeGateway, settings: Settings, form: ShippingForm,
) -> None:
    ledger = StockLedger(MemoryStockStore())
    await ledger.register(SKU_A, available=5)
    await ledger.register(SKU_B, available=0, min_stock_level=2)
    orders = OrderLifecycle(MemoryOrderRepository(), ledger)
    payments = PaymentLifecycle(MemoryPaymentRepository(), orders)
    checkout = CheckoutOrchestrator(
        ledger=ledger,
        orders=orders,
        payments=payments,
        dispatcher=PaymentDispatcher(gateway, settings),
        settings=settings,
    )
    session = Session(identity=CUSTOMER)
    session.cart.add(SKU_A, quantity=2, unit_price=PRICE_A)
    session.cart.add(SKU_B, quantity=1, unit_price=PRICE_B)

    match await checkout.submit(session, form, SELECTIONS["cod"]):
        case Error(InvalidItemsError(items=items)):
            assert items == (InvalidItem(SKU_B, "Out of stock", 0),)
        case other:
            pytest.fail(f"expected invalid items, got {other!r}")

    assert await orders.orders.for_user(CUSTOMER.email) == []
    assert await _levels(ledger, SKU_A) == (5, 0)
    assert gateway.requests == []


class OptimisticLedger(StockLedger):
    """Validation that always passes, so the reservation is what refuses."""

    async def validate_lines(self, lines: Iterable[tuple[SkuRef, int]]) -> tuple[InvalidItem, ...]:
        return ()


@pytest.mark.asyncio
async def test_shortage_found_while_reserving_creates_no_order(
    ledger: StockLedger,
    orders: OrderLifecycle,
    payments: PaymentLifecycle,
    dispatcher: PaymentDispatcher,
    session: Session,
    form: ShippingForm,
) -> None:
    checkout = CheckoutOrchestrator(
        ledger=OptimisticLedger(ledger.store),
        orders=orders,
        payments=payments,
        dispatcher=dispatcher,
    )
    session.cart.add(SKU_B, quantity=3, unit_price=PRICE_B)

    match await checkout.submit(session, form, SELECTIONS["cod"]):
        case Error(InvalidItemsError(items=items)):
            assert [(i.sku, i.reason) for i in items] == [(SKU_B, "Only 1 left in stock")]
        case other:
            pytest.fail(f"expected invalid items, got {other!r}")
    assert await orders.orders.for_user(CUSTOMER.email) == []
    assert await _levels(ledger, SKU_A) == (10, 0)


# ═══════════════════════════════════════════════════════════════════════════════
# Payment methods
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_cash_on_delivery(
    checkout: CheckoutOrchestrator,
    ledger: StockLedger,
    orders: OrderLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    placed = _placed(await checkout.submit(session, form, SELECTIONS["cod"]))

    order = await orders.get(placed.order.id)
    assert order.status == OrderStatus.PENDING_PAYMENT
    assert order.address == "12 Hang Bac, Phuc Xa, Ba Dinh, Ha Noi"
    assert order.total_price == 2 * PRICE_A
    assert placed.payment.status == PaymentStatus.PENDING
    assert placed.instruction.message == COD_MESSAGE
    assert placed.navigation.kind == NavigationKind.INTERNAL
    assert await _levels(ledger, SKU_A) == (8, 2)
    assert len(session.cart) == 0
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_qr_payment_shows_the_code(
    checkout: CheckoutOrchestrator,
    payments: PaymentLifecycle,
    session: Session,
    form: ShippingForm,
) -> None:
    placed = _placed(await checkout.submit(session, form, SELECTIONS["viettel_money_qr"]))

    assert placed.instruction.kind == InstructionKind.SHOW_QR
    assert placed.instruction.qr_code == "XYZ"
    query = parse_qs(urlsplit(placed.navigation.target or "").query)
    assert query["qrCode"] == ["XYZ"]
    assert query["orderId"] == [placed.order.id]
    payment = await payments.get(placed.payment.id)
    assert (payment.status, payment.transaction_id) == (PaymentStatus.PROCESSING, "tx-1")


@pytest.mark.asyncio
async def test_web_payment_navigates_away(
    checkout: CheckoutOrchestrator, session: Session, form: ShippingForm,
) -> None:
    placed = _placed(await checkout.submit(session, form, SELECTIONS["viettel_money_web"]))

    assert placed.navigation.kind == NavigationKind.EXTERNAL
    assert placed.navigation.target == "https://wallet.example/pay/1"


@pytest.mark.asyncio
async def test_declined_initiation_keeps_the_order_for_retry(
    checkout: CheckoutOrchestrator,
    ledger: StockLedger,
    orders: OrderLifecycle,
    payments: PaymentLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    gateway.response = InitiationResponse(success=False, message="wallet offline")

    match await checkout.submit(session, form, SELECTIONS["viettel_money_web"]):
        case Error(PaymentDispatchError(order_id=order_id, retryable=True, message=message)):
            assert message == RETRY_MESSAGE
        case other:
            pytest.fail(f"expected a dispatch error, got {other!r}")

    order = await orders.get(order_id)
    assert order.status == OrderStatus.PENDING_PAYMENT
    assert await _levels(ledger, SKU_A) == (8, 2)
    active = await payments.active(order_id)
    assert active is not None and active.status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_gateway_timeout_keeps_the_order_for_retry(
    checkout: CheckoutOrchestrator,
    orders: OrderLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    gateway.delay = 1.0

    match await checkout.submit(session, form, SELECTIONS["viettel_money_app"]):
        case Error(PaymentDispatchError(order_id=order_id, retryable=True)):
            assert (await orders.get(order_id)).status == OrderStatus.PENDING_PAYMENT
        case other:
            pytest.fail(f"expected a dispatch error, got {other!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Duplicates
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_resubmitting_the_same_checkout_replays_the_order(
    checkout: CheckoutOrchestrator,
    ledger: StockLedger,
    orders: OrderLifecycle,
    session: Session,
    form: ShippingForm,
) -> None:
    first = _placed(await checkout.submit(session, form, SELECTIONS["cod"]))
    session.cart.add(SKU_A, quantity=2, unit_price=PRICE_A, product_name="Ao dai")

    second = _placed(await checkout.submit(session, form, SELECTIONS["cod"]))

    assert second.replayed
    assert second.order.id == first.order.id
    assert len(await orders.orders.for_user(CUSTOMER.email)) == 1
    assert await _levels(ledger, SKU_A) == (8, 2)
    assert len(session.cart) == 0


@pytest.mark.asyncio
async def test_replay_keeps_lines_that_were_not_part_of_the_order(
    checkout: CheckoutOrchestrator,
    session: Session,
    form: ShippingForm,
) -> None:
    await checkout.submit(session, form, SELECTIONS["cod"])
    session.cart.add(SKU_A, quantity=2, unit_price=PRICE_A, product_name="Ao dai")
    session.cart.add(SKU_B, quantity=1, unit_price=PRICE_B, product_name="Non la")
    session.cart.select(SKU_B, False)

    second = _placed(await checkout.submit(session, form, SELECTIONS["cod"]))

    assert second.replayed
    assert [i.sku for i in session.cart.items()] == [SKU_B]


@pytest.mark.asyncio
async def test_concurrent_double_submit_places_one_order(
    checkout: CheckoutOrchestrator,
    orders: OrderLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    gateway.delay = 0.05

    results = await asyncio.gather(
        checkout.submit(session, form, SELECTIONS["viettel_money_qr"]),
        checkout.submit(session, form, SELECTIONS["viettel_money_qr"]),
    )

    placed: set[str] = set()
    for result in results:
        match result:
            case Ok(OrderResult(order=order)):
                placed.add(order.id)
            case Error(SubmissionInProgressError() | EmptyCartError()):
                pass
            case other:
                pytest.fail(f"unexpected outcome {other!r}")
    assert len(placed) == 1
    assert len(await orders.orders.for_user(CUSTOMER.email)) == 1


@pytest.mark.asyncio
async def test_unavailable_submission_store_is_fatal(
    ledger: StockLedger,
    orders: OrderLifecycle,
    payments: PaymentLifecycle,
    dispatcher: PaymentDispatcher,
    session: Session,
    form: ShippingForm,
) -> None:
    checkout = CheckoutOrchestrator(
        ledger=ledger,
        orders=orders,
        payments=payments,
        dispatcher=dispatcher,
        submissions=BrokenStore(),
    )

    with pytest.raises(IntegrityError):
        await checkout.submit(session, form, SELECTIONS["cod"])
    assert await _levels(ledger, SKU_A) == (10, 0)


# ═══════════════════════════════════════════════════════════════════════════════
# retry_payment
# ═══════════════════════════════════════════════════════════════════════════════


async def _failed_dispatch(
    checkout: CheckoutOrchestrator, gateway: FakeGateway, session: Session, form: ShippingForm,
) -> str:
    good = gateway.response
    gateway.response = InitiationResponse(success=False)
    result = await checkout.submit(session, form, SELECTIONS["viettel_money_web"])
    gateway.response = good
    match result:
        case Error(PaymentDispatchError(order_id=order_id)):
            return order_id
        case other:
            pytest.fail(f"expected a dispatch error, got {other!r}")


@pytest.mark.asyncio
async def test_retry_dispatches_the_same_order_again(
    checkout: CheckoutOrchestrator,
    orders: OrderLifecycle,
    payments: PaymentLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    order_id = await _failed_dispatch(checkout, gateway, session, form)

    retried = _placed(await checkout.retry_payment(order_id, SELECTIONS["viettel_money_qr"], CUSTOMER))

    assert retried.order.id == order_id
    assert retried.instruction.kind == InstructionKind.SHOW_QR
    attempts = await payments.for_order(order_id)
    assert len(attempts) == 1
    assert attempts[0].status == PaymentStatus.PROCESSING
    assert len(await orders.orders.for_user(CUSTOMER.email)) == 1


@pytest.mark.asyncio
async def test_retry_reopens_a_failed_order(
    checkout: CheckoutOrchestrator,
    orders: OrderLifecycle,
    payments: PaymentLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    placed = _placed(await checkout.submit(session, form, SELECTIONS["viettel_money_web"]))
    await payments.record_gateway_result(placed.payment.id, success=False)
    assert (await orders.get(placed.order.id)).status == OrderStatus.PAYMENT_FAILED

    _placed(await checkout.retry_payment(placed.order.id, SELECTIONS["viettel_money_web"], CUSTOMER))

    assert (await orders.get(placed.order.id)).status == OrderStatus.PENDING_PAYMENT
    attempts = await payments.for_order(placed.order.id)
    assert [p.status for p in attempts] == [PaymentStatus.FAILED, PaymentStatus.PROCESSING]


@pytest.mark.asyncio
async def test_retry_is_refused_to_other_customers(
    checkout: CheckoutOrchestrator, gateway: FakeGateway, session: Session, form: ShippingForm,
) -> None:
    order_id = await _failed_dispatch(checkout, gateway, session, form)
    stranger = Identity(user_id=8, email="binh@example.vn")

    match await checkout.retry_payment(order_id, SELECTIONS["viettel_money_web"], stranger):
        case Error(NotOrderOwnerError()):
            pass
        case other:
            pytest.fail(f"expected ownership refusal, got {other!r}")
    match await checkout.retry_payment(order_id, SELECTIONS["viettel_money_web"], None):
        case Error(UnauthenticatedError()):
            pass
        case other:
            pytest.fail(f"expected sign-in prompt, got {other!r}")


@pytest.mark.asyncio
async def test_retry_cannot_switch_payment_method(
    checkout: CheckoutOrchestrator, gateway: FakeGateway, session: Session, form: ShippingForm,
) -> None:
    order_id = await _failed_dispatch(checkout, gateway, session, form)

    match await checkout.retry_payment(order_id, SELECTIONS["cod"], CUSTOMER):
        case Error(PaymentDispatchError(retryable=False)):
            pass
        case other:
            pytest.fail(f"expected refusal, got {other!r}")


@pytest.mark.asyncio
async def test_retry_of_a_cancelled_order_is_refused(
    checkout: CheckoutOrchestrator,
    orders: OrderLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    order_id = await _failed_dispatch(checkout, gateway, session, form)
    await orders.cancel(order_id, customer=CUSTOMER)

    match await checkout.retry_payment(order_id, SELECTIONS["viettel_money_web"], CUSTOMER):
        case Error(PaymentDispatchError(retryable=False)):
            pass
        case other:
            pytest.fail(f"expected refusal, got {other!r}")


@pytest.mark.asyncio
async def test_settings_flow_into_the_guard(
    ledger: StockLedger,
    orders: OrderLifecycle,
    payments: PaymentLifecycle,
    dispatcher: PaymentDispatcher,
    session: Session,
    form: ShippingForm,
) -> None:
    checkout = CheckoutOrchestrator(
        ledger=ledger,
        orders=orders,
        payments=payments,
        dispatcher=dispatcher,
        settings=Settings().with_submission_ttl(seconds=0.01),
    )
    first = _placed(await checkout.submit(session, form, SELECTIONS["cod"]))
    await asyncio.sleep(0.03)
    session.cart.add(SKU_A, quantity=2, unit_price=PRICE_A, product_name="Ao dai")

    second = _placed(await checkout.submit(session, form, SELECTIONS["cod"]))

    assert not second.replayed
    assert second.order.id != first.order.id


# ═══════════════════════════════════════════════════════════════════════════════
# Cancellation
# ═══════════════════════════════════════════════════════════════════════════════


class SlowOpen(OrderLifecycle):
    """Blocks while persisting so a test can cancel mid-placement."""

    started: asyncio.Event

    async def open(self, order: Order) -> Order:
        self.started.set()
        await asyncio.sleep(10)
        return await super().open(order)


@pytest.mark.asyncio
async def test_cancelled_placement_gives_the_stock_back(
    ledger: StockLedger,
    dispatcher: PaymentDispatcher,
    session: Session,
    form: ShippingForm,
) -> None:
    orders = SlowOpen(MemoryOrderRepository(), ledger)
    orders.started = asyncio.Event()
    payments = PaymentLifecycle(MemoryPaymentRepository(), orders)
    checkout = CheckoutOrchestrator(ledger=ledger, orders=orders, payments=payments, dispatcher=dispatcher)

    task = asyncio.create_task(checkout.submit(session, form, SELECTIONS["cod"]))
    await orders.started.wait()
    assert await _levels(ledger, SKU_A) == (8, 2)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0.01)

    assert await _levels(ledger, SKU_A) == (10, 0)
    assert await orders.orders.for_user(CUSTOMER.email) == []
    assert len(session.cart) == 1


@pytest.mark.asyncio
async def test_cancelled_dispatch_leaves_a_payable_order(
    checkout: CheckoutOrchestrator,
    ledger: StockLedger,
    orders: OrderLifecycle,
    gateway: FakeGateway,
    session: Session,
    form: ShippingForm,
) -> None:
    gateway.delay = 10.0
    task = asyncio.create_task(checkout.submit(session, form, SELECTIONS["viettel_money_web"]))
    while not gateway.requests:
        await asyncio.sleep(0.01)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    [order] = await orders.orders.for_user(CUSTOMER.email)
    assert order.status == OrderStatus.PENDING_PAYMENT
    assert await _levels(ledger, SKU_A) == (8, 2)
