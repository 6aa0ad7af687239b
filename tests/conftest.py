from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

import pytest
import pytest_asyncio

from storefront import checkout as CO
from storefront import orders as OR
from storefront import payments as P
from storefront import stock as ST
from storefront._types import Identity, SkuRef
from storefront.config import Settings
from storefront.session import Session, sign_in

SKU_A = SkuRef(1)
SKU_B = SkuRef(2, 20)
PRICE_A = Decimal("150000")
PRICE_B = Decimal("90000")

HANOI = CO.Region(1, "Ha Noi")
BA_DINH = CO.Region(101, "Ba Dinh")
PHUC_XA = CO.Region(10101, "Phuc Xa")

CUSTOMER = Identity(user_id=7, email="an@example.vn", name="An")


@dataclass
class FakeGateway:
    """Answers every initiation with ``response``; records what it was asked."""

    response: P.InitiationResponse = field(default_factory=lambda: P.InitiationResponse(
        success=True,
        payment_url="https://wallet.example/pay/1",
        qr_code="XYZ",
        transaction_id="tx-1",
    ))
    delay: float = 0.0
    failure: Exception | None = None
    requests: list[P.InitiationRequest] = field(default_factory=list)

    async def initiate(self, request: P.InitiationRequest) -> P.InitiationResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failure is not None:
            raise self.failure
        return self.response


@pytest.fixture
def settings() -> Settings:
    return Settings().with_base_url("https://shop.example.vn").with_gateway_timeout(seconds=0.2)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture
async def ledger() -> ST.StockLedger:
    ledger = ST.StockLedger(ST.MemoryStockStore())
    await ledger.register(SKU_A, available=10, min_stock_level=2)
    await ledger.register(SKU_B, available=1)
    return ledger


@pytest.fixture
def orders(ledger: ST.StockLedger) -> OR.OrderLifecycle:
    return OR.OrderLifecycle(OR.MemoryOrderRepository(), ledger)


@pytest.fixture
def payments(orders: OR.OrderLifecycle, settings: Settings) -> P.PaymentLifecycle:
    return P.PaymentLifecycle(P.MemoryPaymentRepository(), orders, currency=settings.currency)


@pytest.fixture
def dispatcher(gateway: FakeGateway, settings: Settings) -> P.PaymentDispatcher:
    return P.PaymentDispatcher(gateway, settings)


@pytest.fixture
def checkout(
    ledger: ST.StockLedger,
    orders: OR.OrderLifecycle,
    payments: P.PaymentLifecycle,
    dispatcher: P.PaymentDispatcher,
    settings: Settings,
) -> CO.CheckoutOrchestrator:
    return CO.CheckoutOrchestrator(
        ledger=ledger,
        orders=orders,
        payments=payments,
        dispatcher=dispatcher,
        settings=settings,
    )


@pytest.fixture
def session() -> Session:
    session = sign_in(CUSTOMER)
    session.cart.add(SKU_A, quantity=2, unit_price=PRICE_A, product_name="Ao dai")
    return session


@pytest.fixture
def form() -> CO.ShippingForm:
    return CO.ShippingForm(
        street="12 Hang Bac",
        phone="0912345678",
        province=HANOI,
        district=BA_DINH,
        ward=PHUC_XA,
    )


def make_order(
    *,
    lines: tuple[tuple[SkuRef, int, Decimal], ...] = ((SKU_A, 2, PRICE_A),),
    method: P.PaymentMethod = P.PaymentMethod.CASH_ON_DELIVERY,
    email: str = CUSTOMER.email,
) -> OR.Order:
    return OR.Order.create(
        user_id=CUSTOMER.user_id,
        user_email=email,
        address="12 Hang Bac, Phuc Xa, Ba Dinh, Ha Noi",
        phone="0912345678",
        note="",
        items=tuple(
            OR.OrderItem(
                product_id=sku.product_id,
                variation_id=sku.variation_id,
                product_name=f"product {sku.product_id}",
                product_image=None,
                quantity=qty,
                price=price,
            )
            for sku, qty, price in lines
        ),
        payment_method=method,
    )


async def placed_order(
    ledger: ST.StockLedger,
    orders: OR.OrderLifecycle,
    *,
    method: P.PaymentMethod = P.PaymentMethod.CASH_ON_DELIVERY,
) -> OR.Order:
    """An opened order holding its reservation."""
    order = make_order(method=method)
    reserved = await ledger.reserve(order.id, order.reservation_lines)
    assert reserved
    return await orders.open(order)
