"""
Payment dispatcher — selection → (method, redirect style) → strategy.

    SELECTIONS["viettel_money_qr"]
        == PaymentChoice(PaymentMethod.VIETTEL_MONEY, RedirectStyle.QR)

    instruction = await dispatcher.dispatch(order, choice)

One strategy per redirect style; the wallet strategies share the gateway call,
its timeout and the return URL.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

import combinators as C
from combinators import lift as L
from kungfu import Error, Ok, Result

from storefront.config import Settings
from storefront.errors import GatewayError, UnknownPaymentSelectionError
from storefront.payments._gateway import PaymentGateway
from storefront.payments._types import (
    InitiationRequest,
    InitiationResponse,
    PaymentChoice,
    PaymentMethod,
    RedirectInstruction,
    RedirectStyle,
)

if TYPE_CHECKING:
    from storefront.orders import Order

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Selections
# ═══════════════════════════════════════════════════════════════════════════════

SELECTIONS: Mapping[str, PaymentChoice] = MappingProxyType({
    "cod": PaymentChoice(PaymentMethod.CASH_ON_DELIVERY, RedirectStyle.NONE),
    "viettel_money_web": PaymentChoice(PaymentMethod.VIETTEL_MONEY, RedirectStyle.WEB),
    "viettel_money_qr": PaymentChoice(PaymentMethod.VIETTEL_MONEY, RedirectStyle.QR),
    "viettel_money_app": PaymentChoice(PaymentMethod.VIETTEL_MONEY, RedirectStyle.DEEPLINK),
})


def resolve_selection(selection: str) -> Result[PaymentChoice, UnknownPaymentSelectionError]:
    choice = SELECTIONS.get(selection)
    if choice is None:
        return Error(UnknownPaymentSelectionError(selection))
    return Ok(choice)


# ═══════════════════════════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════════════════════════

COD_MESSAGE = "Order placed. Please pay the courier in cash on delivery."
WEB_MANUAL_MESSAGE = "Order placed. Complete the wallet payment from your order history."
QR_WAITING_MESSAGE = "Waiting for payment. Scan the code with the wallet app."
OPEN_WALLET_MESSAGE = "Order placed. Open the wallet app to complete the payment."
RETRY_MESSAGE = "We could not start the payment. Please try again."


# ═══════════════════════════════════════════════════════════════════════════════
# Dispatcher
# ═══════════════════════════════════════════════════════════════════════════════

type Strategy = Callable[[PaymentDispatcher, Order], Awaitable[RedirectInstruction]]


class PaymentDispatcher:
    def __init__(self, gateway: PaymentGateway, settings: Settings) -> None:
        self._gateway = gateway
        self._settings = settings

    async def dispatch(self, order: Order, choice: PaymentChoice) -> RedirectInstruction:
        strategy = _STRATEGIES[choice.redirect_style]
        instruction = await strategy(self, order)
        logger.info("dispatched %s via %s: %s", order.id, choice.redirect_style, instruction.kind)
        return instruction

    async def _initiate(
        self,
        order: Order,
        style: RedirectStyle,
    ) -> Result[InitiationResponse, GatewayError | C.TimeoutError]:
        request = InitiationRequest(
            order_id=order.id,
            amount=order.total_price,
            currency=self._settings.currency,
            return_type=style,
            return_url=self._settings.return_url(order.id),
        )
        call = L.catching_async(
            lambda: self._gateway.initiate(request),
            on_error=lambda exc: GatewayError(f"payment gateway call failed: {exc}"),
        )
        result = await C.timeout(call, seconds=self._settings.gateway_timeout.total_seconds())
        match result:
            case Error(C.TimeoutError() as err):
                logger.warning("payment initiation for %s timed out after %ss", order.id, err.seconds)
            case Error(err):
                logger.warning("payment initiation for %s failed: %s", order.id, err)
            case Ok(response) if not response.success:
                logger.warning("gateway declined initiation for %s: %s", order.id, response.message)
        return result

    # ═══════════════════════════════════════════════════════════════════════
    # Strategies
    # ═══════════════════════════════════════════════════════════════════════

    async def _cash_on_delivery(self, order: Order) -> RedirectInstruction:
        return RedirectInstruction.success(order.id, COD_MESSAGE)

    async def _web(self, order: Order) -> RedirectInstruction:
        match await self._initiate(order, RedirectStyle.WEB):
            case Ok(InitiationResponse(success=True, payment_url=str(url), transaction_id=tx)) if url:
                return RedirectInstruction.navigate(order.id, url, transaction_id=tx)
            case Ok(InitiationResponse(success=True, transaction_id=tx)):
                return RedirectInstruction.success(order.id, WEB_MANUAL_MESSAGE, transaction_id=tx)
            case _:
                return RedirectInstruction.error(order.id, RETRY_MESSAGE)

    async def _qr(self, order: Order) -> RedirectInstruction:
        match await self._initiate(order, RedirectStyle.QR):
            case Ok(InitiationResponse(success=True, qr_code=str(code), message=message, transaction_id=tx)) if code:
                return RedirectInstruction.show_qr(order.id, code, message or QR_WAITING_MESSAGE, transaction_id=tx)
            case _:
                return RedirectInstruction.error(order.id, RETRY_MESSAGE)

    async def _deeplink(self, order: Order) -> RedirectInstruction:
        match await self._initiate(order, RedirectStyle.DEEPLINK):
            case Ok(InitiationResponse(success=True, payment_url=str(url), transaction_id=tx)) if url:
                return RedirectInstruction.navigate(order.id, url, transaction_id=tx)
            case Ok(InitiationResponse(success=True, transaction_id=tx)):
                return RedirectInstruction.success(order.id, OPEN_WALLET_MESSAGE, transaction_id=tx)
            case _:
                return RedirectInstruction.error(order.id, RETRY_MESSAGE)


_STRATEGIES: Mapping[RedirectStyle, Strategy] = MappingProxyType({
    RedirectStyle.NONE: PaymentDispatcher._cash_on_delivery,
    RedirectStyle.WEB: PaymentDispatcher._web,
    RedirectStyle.QR: PaymentDispatcher._qr,
    RedirectStyle.DEEPLINK: PaymentDispatcher._deeplink,
})


__all__ = (
    "SELECTIONS",
    "resolve_selection",
    "PaymentDispatcher",
    "COD_MESSAGE",
    "WEB_MANUAL_MESSAGE",
    "QR_WAITING_MESSAGE",
    "OPEN_WALLET_MESSAGE",
    "RETRY_MESSAGE",
)
