from decimal import Decimal

import pytest
from kungfu import Error, Ok

from storefront.cart import CartItem, CartStore, add_checked
from storefront.errors import InvalidItem
from storefront.session import sign_in, sign_out
from storefront.stock import StockLedger
from tests.conftest import CUSTOMER, PRICE_A, PRICE_B, SKU_A, SKU_B


def test_add_merges_lines_for_the_same_sku() -> None:
    cart = CartStore()
    cart.add(SKU_A, quantity=1, unit_price=PRICE_A)
    cart.add(SKU_A, quantity=2, unit_price=PRICE_A)

    assert len(cart) == 1
    assert cart.items()[0].quantity == 3


def test_selected_total_counts_only_selected_lines() -> None:
    cart = CartStore()
    cart.add(SKU_A, quantity=2, unit_price=PRICE_A)
    cart.add(SKU_B, quantity=1, unit_price=PRICE_B)
    cart.select(SKU_B, False)

    assert cart.selected() == (cart.items()[0],)
    assert cart.selected_total() == Decimal("300000")


def test_remove_lines_keeps_unselected_lines() -> None:
    cart = CartStore()
    cart.add(SKU_A, quantity=2, unit_price=PRICE_A)
    cart.add(SKU_B, quantity=1, unit_price=PRICE_B)
    cart.select(SKU_B, False)

    cart.remove_lines(tuple(i.sku for i in cart.selected()))

    assert [i.sku for i in cart.items()] == [SKU_B]


@pytest.mark.parametrize(("quantity", "price"), [(0, PRICE_A), (-1, PRICE_A), (1, Decimal("-1"))])
def test_cart_item_rejects_bad_values(quantity: int, price: Decimal) -> None:
    with pytest.raises(ValueError):
        CartItem(SKU_A, quantity, price)


def test_unknown_line_is_a_key_error() -> None:
    with pytest.raises(KeyError):
        CartStore().set_quantity(SKU_A, 2)


@pytest.mark.asyncio
async def test_add_checked_refuses_more_than_available(ledger: StockLedger) -> None:
    cart = CartStore()

    assert isinstance(await add_checked(cart, ledger, SKU_B, quantity=1, unit_price=PRICE_B), Ok)
    match await add_checked(cart, ledger, SKU_B, quantity=1, unit_price=PRICE_B):
        case Error(InvalidItem(sku=sku, available_quantity=available)):
            assert sku == SKU_B
            assert available == 1
        case other:
            pytest.fail(f"expected refusal, got {other!r}")
    assert cart.items()[0].quantity == 1


@pytest.mark.asyncio
async def test_add_checked_never_reserves(ledger: StockLedger) -> None:
    await add_checked(CartStore(), ledger, SKU_A, quantity=3, unit_price=PRICE_A)

    item = await ledger.find(SKU_A)
    assert item is not None
    assert (item.available_stock, item.reserved_stock) == (10, 0)


def test_sign_out_clears_the_session_cart() -> None:
    session = sign_in(CUSTOMER)
    session.cart.add(SKU_A, quantity=1, unit_price=PRICE_A)

    sign_out(session)

    assert not session.authenticated
    assert len(session.cart) == 0


def test_sessions_do_not_share_carts() -> None:
    first = sign_in(CUSTOMER)
    second = sign_in(CUSTOMER)
    first.cart.add(SKU_A, quantity=1, unit_price=PRICE_A)

    assert len(second.cart) == 0
