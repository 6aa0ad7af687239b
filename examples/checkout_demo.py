"""
Checkout — from cart to payment hand-off.

Run: python -m examples.checkout_demo

Covers:
    - address cascade and shipping form
    - cash on delivery, wallet QR, failed wallet + retry
    - a shortfall that places nothing
    - a duplicate submit answered with the first order
    - back-office commands through the admin runner
"""

from decimal import Decimal

from kungfu import Error, Ok

from storefront import admin as A
from storefront import checkout as CO
from storefront import orders as OR
from storefront import payments as P
from storefront import stock as ST
from storefront._types import Identity, SkuRef
from storefront.config import Settings, configure_logging
from storefront.errors import InvalidItemsError, PaymentDispatchError
from storefront.session import sign_in, sign_out
from examples._infra import FakeDirectory, FakeWallet, banner, run

SHIRT = SkuRef(1)
SHOES = SkuRef(2, 42)


def show(result: object) -> None:
    match result:
        case Ok(CO.OrderResult(order=order, navigation=nav, replayed=replayed)):
            print(f"  ✓ {order.id} → {nav.kind}: {nav.target or nav.message} (replayed={replayed})")
        case Error(InvalidItemsError(items=items)):
            for item in items:
                print(f"  ✗ {item.sku}: {item.reason}")
        case Error(PaymentDispatchError(order_id=order_id, message=message)):
            print(f"  ! {order_id}: {message}")
        case Error(err):
            print(f"  ✗ {err}")


async def main() -> None:
    settings = Settings.from_env().with_base_url("https://shop.example.vn").with_log_level("WARNING")
    configure_logging(settings)

    ledger = ST.StockLedger(ST.MemoryStockStore())
    await ledger.register(SHIRT, available=10, min_stock_level=3)
    await ledger.register(SHOES, available=1)
    orders = OR.OrderLifecycle(OR.MemoryOrderRepository(), ledger)
    payments = P.PaymentLifecycle(P.MemoryPaymentRepository(), orders, currency=settings.currency)
    wallet = FakeWallet()
    checkout = CO.CheckoutOrchestrator(
        ledger=ledger,
        orders=orders,
        payments=payments,
        dispatcher=P.PaymentDispatcher(wallet, settings),
        settings=settings,
    )

    banner("Shipping address")
    cascade = CO.AddressCascade(FakeDirectory())
    await cascade.load_provinces()
    await cascade.select_province(1)
    await cascade.select_district(102)
    cascade.select_ward(10201)
    match CO.ShippingForm.from_cascade(cascade, street="12 Hang Bac", phone="0912345678"):
        case Ok(form):
            print(f"  {form.address}")
        case Error(err):
            print(f"  ✗ {err.fields}")
            return

    session = sign_in(Identity(user_id=7, email="an@example.vn", name="An"))

    banner("Shortfall: nothing is placed")
    session.cart.add(SHIRT, quantity=2, unit_price=Decimal("150000"), product_name="Shirt")
    session.cart.add(SHOES, quantity=3, unit_price=Decimal("900000"), product_name="Shoes")
    show(await checkout.submit(session, form, P.SELECTIONS["cod"]))
    session.cart.remove(SHOES)

    banner("Cash on delivery")
    show(await checkout.submit(session, form, P.SELECTIONS["cod"]))

    banner("Same cart again: the first order answers")
    session.cart.add(SHIRT, quantity=2, unit_price=Decimal("150000"), product_name="Shirt")
    show(await checkout.submit(session, form, P.SELECTIONS["cod"]))

    banner("Wallet QR")
    session.cart.add(SHOES, quantity=1, unit_price=Decimal("900000"), product_name="Shoes")
    show(await checkout.submit(session, form, P.SELECTIONS["viettel_money_qr"]))

    banner("Wallet down, then retry")
    wallet.online = False
    session.cart.add(SHIRT, quantity=1, unit_price=Decimal("150000"), product_name="Shirt")
    failed = await checkout.submit(session, form, P.SELECTIONS["viettel_money_web"])
    show(failed)
    wallet.online = True
    match failed:
        case Error(PaymentDispatchError(order_id=order_id, retryable=True)):
            show(await checkout.retry_payment(order_id, P.SELECTIONS["viettel_money_web"], session.identity))

    banner("Back office")
    runner = A.admin_runner(orders=orders, ledger=ledger, payments=payments)
    match await runner.run(A.ListStockAlerts()):
        case Ok(alerts):
            for alert in alerts:
                print(f"  {alert.severity}: {alert.sku} has {alert.available_stock} left")
    match await runner.run(A.GetPaymentSummary()):
        case Ok(summary):
            print(f"  payments: {summary.total_payments} total, {summary.pending} pending")

    sign_out(session)


if __name__ == "__main__":
    run(main)
