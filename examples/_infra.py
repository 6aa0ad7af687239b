"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Sequence
from dataclasses import dataclass, field

from storefront.checkout import Region
from storefront.payments import InitiationRequest, InitiationResponse


# Fake wallet
@dataclass(slots=True)
class FakeWallet:
    """Wallet gateway that answers after a short delay; flip ``online`` to fail."""

    online: bool = True
    calls: int = 0

    async def initiate(self, request: InitiationRequest) -> InitiationResponse:
        self.calls += 1
        await asyncio.sleep(0.05)
        print(f"  [wallet] {request.return_type} for {request.order_id}: {request.amount} {request.currency}")
        if not self.online:
            return InitiationResponse(success=False, message="wallet maintenance")
        return InitiationResponse(
            success=True,
            payment_url=f"https://wallet.example/pay/{request.order_id}",
            qr_code=f"QR-{request.order_id[-6:]}",
            transaction_id=f"tx-{self.calls}",
        )


# Fake address directory
@dataclass(slots=True)
class FakeDirectory:
    provinces_: tuple[Region, ...] = (Region(1, "Ha Noi"), Region(79, "Ho Chi Minh"))
    districts_: dict[int, tuple[Region, ...]] = field(default_factory=lambda: {
        1: (Region(101, "Ba Dinh"), Region(102, "Hoan Kiem")),
        79: (Region(760, "Quan 1"),),
    })
    wards_: dict[int, tuple[Region, ...]] = field(default_factory=lambda: {
        101: (Region(10101, "Phuc Xa"),),
        102: (Region(10201, "Hang Bac"),),
        760: (Region(76001, "Ben Nghe"),),
    })

    async def provinces(self) -> Sequence[Region]:
        return self.provinces_

    async def districts(self, province_code: int) -> Sequence[Region]:
        await asyncio.sleep(0.01)
        return self.districts_[province_code]

    async def wards(self, district_code: int) -> Sequence[Region]:
        await asyncio.sleep(0.01)
        return self.wards_[district_code]


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
