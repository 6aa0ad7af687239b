"""
RedirectInstruction → where the customer goes next.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlencode

from storefront.payments import InstructionKind, RedirectInstruction

SUCCESS_PATH = "/checkout/success"
QR_PATH = "/checkout/qr"


class NavigationKind(StrEnum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    STAY = "stay"  # dispatch failed; remain on checkout and offer retry


@dataclass(frozen=True, slots=True)
class Navigation:
    kind: NavigationKind
    target: str | None = None
    message: str | None = None


def _path(path: str, **params: str | None) -> str:
    return f"{path}?{urlencode({k: v for k, v in params.items() if v is not None})}"


def navigation_for(instruction: RedirectInstruction) -> Navigation:
    match instruction.kind:
        case InstructionKind.SUCCESS:
            target = _path(SUCCESS_PATH, orderId=instruction.order_id, message=instruction.message)
            return Navigation(NavigationKind.INTERNAL, target, instruction.message)
        case InstructionKind.SHOW_QR:
            target = _path(
                QR_PATH,
                orderId=instruction.order_id,
                qrCode=instruction.qr_code,
                message=instruction.message,
            )
            return Navigation(NavigationKind.INTERNAL, target, instruction.message)
        case InstructionKind.NAVIGATE:
            return Navigation(NavigationKind.EXTERNAL, instruction.url)
        case InstructionKind.ERROR:
            return Navigation(NavigationKind.STAY, None, instruction.message)
    raise ValueError(f"unknown instruction kind: {instruction.kind!r}")


__all__ = ("NavigationKind", "Navigation", "navigation_for", "SUCCESS_PATH", "QR_PATH")
