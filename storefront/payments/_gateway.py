"""
Payment-initiation collaborator.
"""

from __future__ import annotations

from typing import Protocol

from storefront.payments._types import InitiationRequest, InitiationResponse


class PaymentGateway(Protocol):
    """
    Starts a wallet payment. May raise on transport failure; the dispatcher
    turns exceptions and timeouts into a retryable instruction.
    """

    async def initiate(self, request: InitiationRequest) -> InitiationResponse: ...


__all__ = ("PaymentGateway",)
