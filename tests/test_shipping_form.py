from urllib.parse import parse_qs, urlsplit

import pytest
from kungfu import Error, Ok

from storefront.checkout import (
    AddressCascade,
    NavigationKind,
    ShippingForm,
    navigation_for,
)
from storefront.errors import InvalidShippingFormError
from storefront.payments import RedirectInstruction
from tests.conftest import BA_DINH, HANOI, PHUC_XA
from tests.test_address import SlowDirectory

VALID = {
    "street": "  12 Hang Bac ",
    "phone": "0912345678",
    "province": HANOI,
    "district": BA_DINH,
    "ward": PHUC_XA,
}


def test_valid_form_builds_the_address_line() -> None:
    match ShippingForm.parse(VALID):
        case Ok(form):
            assert form.address == "12 Hang Bac, Phuc Xa, Ba Dinh, Ha Noi"
            assert form.note == ""
        case other:
            pytest.fail(f"expected a form, got {other!r}")


def test_regions_may_arrive_as_plain_mappings() -> None:
    data = {**VALID, "province": {"code": 1, "name": "Ha Noi"}}

    assert isinstance(ShippingForm.parse(data), Ok)


@pytest.mark.parametrize("phone", ["091234567", "091234567890", "09123abc78", ""])
def test_bad_phone_is_reported_on_the_phone_field(phone: str) -> None:
    match ShippingForm.parse({**VALID, "phone": phone}):
        case Error(InvalidShippingFormError(fields=fields)):
            assert list(fields) == ["phone"]
            assert "10-11 digits" in fields["phone"]
        case other:
            pytest.fail(f"expected a phone error, got {other!r}")


def test_every_missing_field_is_reported() -> None:
    match ShippingForm.parse({"street": "   ", "phone": "0912345678"}):
        case Error(InvalidShippingFormError(fields=fields)):
            assert set(fields) == {"street", "province", "district", "ward"}
        case other:
            pytest.fail(f"expected field errors, got {other!r}")


@pytest.mark.asyncio
async def test_incomplete_cascade_does_not_make_a_form() -> None:
    directory = SlowDirectory()
    directory.open_all()
    cascade = AddressCascade(directory)
    await cascade.load_provinces()
    await cascade.select_province(1)

    match ShippingForm.from_cascade(cascade, street="12 Hang Bac", phone="0912345678"):
        case Error(InvalidShippingFormError(fields=fields)):
            assert set(fields) == {"district", "ward"}
        case other:
            pytest.fail(f"expected field errors, got {other!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Navigation
# ═══════════════════════════════════════════════════════════════════════════════


def test_success_goes_to_the_success_page() -> None:
    nav = navigation_for(RedirectInstruction.success("ord_1", "Order placed"))

    parts = urlsplit(nav.target or "")
    assert nav.kind == NavigationKind.INTERNAL
    assert parts.path == "/checkout/success"
    assert parse_qs(parts.query) == {"orderId": ["ord_1"], "message": ["Order placed"]}


def test_qr_goes_to_the_qr_page_with_the_code() -> None:
    nav = navigation_for(RedirectInstruction.show_qr("ord_1", "XYZ", "Scan it"))

    parts = urlsplit(nav.target or "")
    assert parts.path == "/checkout/qr"
    assert parse_qs(parts.query)["qrCode"] == ["XYZ"]


def test_navigate_leaves_the_shop() -> None:
    nav = navigation_for(RedirectInstruction.navigate("ord_1", "https://wallet.example/pay"))

    assert (nav.kind, nav.target) == (NavigationKind.EXTERNAL, "https://wallet.example/pay")


def test_error_stays_on_checkout() -> None:
    nav = navigation_for(RedirectInstruction.error("ord_1", "try again"))

    assert (nav.kind, nav.target, nav.message) == (NavigationKind.STAY, None, "try again")
