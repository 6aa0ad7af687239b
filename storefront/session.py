"""
Session — who is shopping and what is in their cart.

A session is created at sign-in and torn down at sign-out; the cart is owned
by the session, never held globally.

    session = sign_in(Identity(user_id=7, email="an@example.vn", name="An"))
    session.cart.add(SkuRef(1), quantity=2, unit_price=Decimal("150000"))
    ...
    sign_out(session)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from storefront._types import Identity
from storefront.cart import CartStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    identity: Identity | None = None
    cart: CartStore = field(default_factory=CartStore)

    @property
    def authenticated(self) -> bool:
        return self.identity is not None and bool(self.identity.email)


def sign_in(identity: Identity, cart: CartStore | None = None) -> Session:
    """Open a session. An anonymous cart may be carried over."""
    logger.info("session opened for %s", identity.email)
    return Session(identity=identity, cart=cart if cart is not None else CartStore())


def sign_out(session: Session) -> None:
    if session.identity is not None:
        logger.info("session closed for %s", session.identity.email)
    session.cart.clear()
    session.identity = None


__all__ = ("Session", "sign_in", "sign_out")
