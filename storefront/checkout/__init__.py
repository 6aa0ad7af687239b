"""
Checkout — from a selected cart to an order and a payment hand-off.

    from storefront import checkout as CO

    form = CO.ShippingForm.from_cascade(cascade, street="12 Ly Thuong Kiet", phone="0912345678")
    result = await orchestrator.submit(session, form.unwrap(), choice)
"""

from storefront.checkout._address import Region, AddressDirectory, AddressCascade
from storefront.checkout._form import ShippingForm, PHONE_PATTERN
from storefront.checkout._navigation import (
    NavigationKind,
    Navigation,
    navigation_for,
    SUCCESS_PATH,
    QR_PATH,
)
from storefront.checkout._graph import (
    CheckoutContext,
    Submission,
    ValidatedItems,
    OrderDraft,
    PlacedOrder,
    CartCleared,
    Dispatched,
    place,
)
from storefront.checkout._orchestrator import (
    OrderResult,
    CheckoutOrchestrator,
    RetryError,
    fingerprint,
)

__all__ = (
    "Region",
    "AddressDirectory",
    "AddressCascade",
    "ShippingForm",
    "PHONE_PATTERN",
    "NavigationKind",
    "Navigation",
    "navigation_for",
    "SUCCESS_PATH",
    "QR_PATH",
    "CheckoutContext",
    "Submission",
    "ValidatedItems",
    "OrderDraft",
    "PlacedOrder",
    "CartCleared",
    "Dispatched",
    "place",
    "OrderResult",
    "CheckoutOrchestrator",
    "RetryError",
    "fingerprint",
)
