"""
Payment transition table.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from storefront.errors import InvalidTransitionError
from storefront.payments._types import PaymentStatus

P = PaymentStatus

PAYMENT_TRANSITIONS: Mapping[PaymentStatus, frozenset[PaymentStatus]] = MappingProxyType({
    P.PENDING: frozenset({P.PROCESSING, P.FAILED, P.CANCELLED, P.EXPIRED}),
    P.PROCESSING: frozenset({P.SUCCESSFUL, P.FAILED, P.CANCELLED, P.EXPIRED}),
    P.SUCCESSFUL: frozenset({P.PARTIALLY_REFUNDED, P.REFUNDED}),
    P.PARTIALLY_REFUNDED: frozenset({P.PARTIALLY_REFUNDED, P.REFUNDED}),
    P.FAILED: frozenset(),
    P.CANCELLED: frozenset(),
    P.EXPIRED: frozenset(),
    P.REFUNDED: frozenset(),
})

OPEN: frozenset[PaymentStatus] = frozenset({P.PENDING, P.PROCESSING})
"""Non-terminal in the sense that matters: money may still move in."""

REFUNDABLE: frozenset[PaymentStatus] = frozenset({P.SUCCESSFUL, P.PARTIALLY_REFUNDED})


def ensure_payment_transition(payment_id: str, current: PaymentStatus, target: PaymentStatus) -> None:
    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError("payment", payment_id, current.value, target.value)


__all__ = ("PAYMENT_TRANSITIONS", "OPEN", "REFUNDABLE", "ensure_payment_transition")
