import pytest
from kungfu import Error, Ok

from storefront.config import Settings
from storefront.errors import UnknownPaymentSelectionError
from storefront.payments import (
    COD_MESSAGE,
    OPEN_WALLET_MESSAGE,
    QR_WAITING_MESSAGE,
    RETRY_MESSAGE,
    SELECTIONS,
    WEB_MANUAL_MESSAGE,
    InitiationResponse,
    InstructionKind,
    PaymentChoice,
    PaymentDispatcher,
    PaymentMethod,
    RedirectStyle,
    resolve_selection,
)
from tests.conftest import FakeGateway, make_order


def _dispatcher(gateway: FakeGateway, settings: Settings) -> PaymentDispatcher:
    return PaymentDispatcher(gateway, settings)


@pytest.mark.parametrize(
    ("selection", "method", "style"),
    [
        ("cod", PaymentMethod.CASH_ON_DELIVERY, RedirectStyle.NONE),
        ("viettel_money_web", PaymentMethod.VIETTEL_MONEY, RedirectStyle.WEB),
        ("viettel_money_qr", PaymentMethod.VIETTEL_MONEY, RedirectStyle.QR),
        ("viettel_money_app", PaymentMethod.VIETTEL_MONEY, RedirectStyle.DEEPLINK),
    ],
)
def test_selection_maps_to_method_and_style(selection: str, method: PaymentMethod, style: RedirectStyle) -> None:
    match resolve_selection(selection):
        case Ok(choice):
            assert choice == PaymentChoice(method, style)
        case other:
            pytest.fail(f"expected a choice, got {other!r}")


def test_unknown_selection_is_an_error() -> None:
    match resolve_selection("bitcoin"):
        case Error(UnknownPaymentSelectionError(selection=selection)):
            assert selection == "bitcoin"
        case other:
            pytest.fail(f"expected unknown selection, got {other!r}")


@pytest.mark.asyncio
async def test_cash_on_delivery_never_calls_the_gateway(gateway: FakeGateway, settings: Settings) -> None:
    order = make_order()

    instruction = await _dispatcher(gateway, settings).dispatch(order, SELECTIONS["cod"])

    assert (instruction.kind, instruction.message) == (InstructionKind.SUCCESS, COD_MESSAGE)
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_web_navigates_to_the_payment_url(gateway: FakeGateway, settings: Settings) -> None:
    order = make_order(method=PaymentMethod.VIETTEL_MONEY)

    instruction = await _dispatcher(gateway, settings).dispatch(order, SELECTIONS["viettel_money_web"])

    assert instruction.kind == InstructionKind.NAVIGATE
    assert instruction.url == "https://wallet.example/pay/1"
    assert instruction.transaction_id == "tx-1"
    [request] = gateway.requests
    assert request.return_type == RedirectStyle.WEB
    assert request.return_url == f"https://shop.example.vn/checkout/success?orderId={order.id}"
    assert (request.amount, request.currency) == (order.total_price, "VND")


@pytest.mark.asyncio
async def test_web_without_url_asks_for_manual_completion(gateway: FakeGateway, settings: Settings) -> None:
    gateway.response = InitiationResponse(success=True)

    instruction = await _dispatcher(gateway, settings).dispatch(
        make_order(method=PaymentMethod.VIETTEL_MONEY), SELECTIONS["viettel_money_web"],
    )

    assert (instruction.kind, instruction.message) == (InstructionKind.SUCCESS, WEB_MANUAL_MESSAGE)


@pytest.mark.asyncio
async def test_qr_shows_the_code(gateway: FakeGateway, settings: Settings) -> None:
    order = make_order(method=PaymentMethod.VIETTEL_MONEY)

    instruction = await _dispatcher(gateway, settings).dispatch(order, SELECTIONS["viettel_money_qr"])

    assert instruction.kind == InstructionKind.SHOW_QR
    assert (instruction.qr_code, instruction.message) == ("XYZ", QR_WAITING_MESSAGE)
    assert instruction.order_id == order.id


@pytest.mark.asyncio
async def test_qr_without_code_is_an_error(gateway: FakeGateway, settings: Settings) -> None:
    gateway.response = InitiationResponse(success=True, payment_url="https://wallet.example/pay/1")

    instruction = await _dispatcher(gateway, settings).dispatch(
        make_order(method=PaymentMethod.VIETTEL_MONEY), SELECTIONS["viettel_money_qr"],
    )

    assert instruction.is_error


@pytest.mark.asyncio
async def test_deeplink_without_url_tells_the_customer_to_open_the_app(
    gateway: FakeGateway, settings: Settings,
) -> None:
    gateway.response = InitiationResponse(success=True, transaction_id="tx-2")

    instruction = await _dispatcher(gateway, settings).dispatch(
        make_order(method=PaymentMethod.VIETTEL_MONEY), SELECTIONS["viettel_money_app"],
    )

    assert (instruction.kind, instruction.message) == (InstructionKind.SUCCESS, OPEN_WALLET_MESSAGE)
    assert gateway.requests[0].return_type == RedirectStyle.DEEPLINK


@pytest.mark.asyncio
@pytest.mark.parametrize("selection", ["viettel_money_web", "viettel_money_qr", "viettel_money_app"])
async def test_declined_initiation_is_a_retryable_error(
    gateway: FakeGateway, settings: Settings, selection: str,
) -> None:
    gateway.response = InitiationResponse(success=False, message="wallet offline")

    instruction = await _dispatcher(gateway, settings).dispatch(
        make_order(method=PaymentMethod.VIETTEL_MONEY), SELECTIONS[selection],
    )

    assert instruction.kind == InstructionKind.ERROR
    assert instruction.retryable
    assert instruction.message == RETRY_MESSAGE


@pytest.mark.asyncio
async def test_gateway_exception_becomes_an_error_instruction(gateway: FakeGateway, settings: Settings) -> None:
    gateway.failure = ConnectionError("reset by peer")

    instruction = await _dispatcher(gateway, settings).dispatch(
        make_order(method=PaymentMethod.VIETTEL_MONEY), SELECTIONS["viettel_money_web"],
    )

    assert instruction.is_error and instruction.retryable


@pytest.mark.asyncio
async def test_slow_gateway_times_out(gateway: FakeGateway, settings: Settings) -> None:
    gateway.delay = 5.0

    instruction = await _dispatcher(gateway, settings.with_gateway_timeout(seconds=0.05)).dispatch(
        make_order(method=PaymentMethod.VIETTEL_MONEY), SELECTIONS["viettel_money_qr"],
    )

    assert instruction.is_error and instruction.retryable
