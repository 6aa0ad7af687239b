"""
Stock reservation ledger.

Turns business operations (reserve for an order, release, commit, adjust)
into StockChange sets and hands them to a StockStore. The store guarantees
atomicity; the ledger guarantees that every quantity change is paired with
its audit movement.

    ledger = StockLedger(MemoryStockStore())
    item = await ledger.register(SkuRef(1), available=5, min_stock_level=2)

    match await ledger.reserve("ord_1", [(SkuRef(1), 2)]):
        case Ok(reservation): ...
        case Error(InsufficientStockError() as e): ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta

from kungfu import Error, Ok, Result

from storefront._types import SkuRef, utcnow
from storefront.errors import (
    InsufficientStockError,
    IntegrityError,
    InvalidAdjustmentError,
    InvalidItem,
    LedgerCorruptionError,
    NotFoundError,
    Shortage,
)
from storefront.stock._store import StockStore
from storefront.stock._types import (
    AlertType,
    MovementType,
    NegativeStock,
    Reservation,
    ReservationExists,
    ReservationLine,
    ReservationNotActive,
    ReservationState,
    Severity,
    StockAlert,
    StockChange,
    StockDelta,
    StockItem,
    StockMovement,
    StockStatus,
    StockSummary,
    StockValidation,
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

_RECEIVING_SIGN: dict[MovementType, int] = {
    MovementType.IN: 1,
    MovementType.RETURNED: 1,
    MovementType.DAMAGED: -1,
}


def _merge_lines(lines: Iterable[tuple[SkuRef, int]]) -> dict[SkuRef, int]:
    merged: dict[SkuRef, int] = {}
    for sku, quantity in lines:
        if quantity < 1:
            raise ValueError(f"quantity for {sku} must be at least 1, got {quantity}")
        merged[sku] = merged.get(sku, 0) + quantity
    return merged


class StockLedger:
    def __init__(self, store: StockStore) -> None:
        self._store = store

    @property
    def store(self) -> StockStore:
        return self._store

    # ═══════════════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════════════

    async def item(self, stock_id: int) -> StockItem:
        item = await self._store.get(stock_id)
        if item is None:
            raise NotFoundError("stock item", stock_id)
        return item

    async def find(self, sku: SkuRef) -> StockItem | None:
        return await self._store.find(sku)

    async def items(self) -> list[StockItem]:
        return await self._store.all()

    async def reservation(self, order_id: str) -> Reservation | None:
        return await self._store.reservation(order_id)

    async def movements(
        self,
        *,
        stock_id: int | None = None,
        reference: str | None = None,
    ) -> list[StockMovement]:
        return await self._store.movements(stock_id=stock_id, reference=reference)

    async def validate(self, sku: SkuRef, quantity: int) -> StockValidation:
        """Read-only availability check. Never mutates."""
        item = await self._store.find(sku)
        if item is None:
            return StockValidation(False, 0, "This product is no longer sold")
        if item.available_stock == 0:
            return StockValidation(False, 0, "Out of stock")
        if item.available_stock < quantity:
            return StockValidation(
                False,
                item.available_stock,
                f"Only {item.available_stock} left in stock",
            )
        return StockValidation(True, item.available_stock)

    async def validate_lines(self, lines: Iterable[tuple[SkuRef, int]]) -> tuple[InvalidItem, ...]:
        """Validate a whole selection; lines for the same SKU are summed first."""
        invalid: list[InvalidItem] = []
        for sku, quantity in _merge_lines(lines).items():
            check = await self.validate(sku, quantity)
            if not check.available:
                invalid.append(InvalidItem(sku, check.message or "unavailable", check.available_quantity))
        return tuple(invalid)

    # ═══════════════════════════════════════════════════════════════════════
    # Order flow
    # ═══════════════════════════════════════════════════════════════════════

    async def reserve(
        self,
        order_id: str,
        lines: Iterable[tuple[SkuRef, int]],
        *,
        actor: str = SYSTEM_ACTOR,
    ) -> Result[Reservation, InsufficientStockError]:
        """
        Move quantities from available to reserved for every line, or for none.

        One RESERVED movement per SKU, referencing the order.
        """
        wanted = _merge_lines(lines)
        resolved: list[tuple[StockItem, int]] = []
        shortages: list[Shortage] = []
        for sku, quantity in wanted.items():
            item = await self._store.find(sku)
            if item is None:
                shortages.append(Shortage(sku, quantity, 0))
            elif item.available_stock < quantity:
                shortages.append(Shortage(sku, quantity, item.available_stock))
            else:
                resolved.append((item, quantity))
        if shortages:
            logger.info("reservation for %s refused: %s", order_id, shortages)
            return Error(InsufficientStockError(tuple(shortages)))

        reservation = Reservation(
            order_id=order_id,
            lines=tuple(ReservationLine(item.id, item.sku, qty) for item, qty in resolved),
        )
        change = StockChange(
            deltas=tuple(StockDelta(item.id, available=-qty, reserved=qty) for item, qty in resolved),
            movements=tuple(
                StockMovement(
                    stock_id=item.id,
                    sku=item.sku,
                    type=MovementType.RESERVED,
                    quantity=qty,
                    reason="Reserved for order",
                    reference=order_id,
                    actor=actor,
                )
                for item, qty in resolved
            ),
            open_reservation=reservation,
        )

        match await self._store.apply(change):
            case Ok(_):
                logger.info("reserved %d line(s) for %s", len(reservation.lines), order_id)
                return Ok(reservation)
            case Error(NegativeStock(stock_id=stock_id, available=available)):
                # Lost the race between our read and the store's check.
                line = next(ln for ln in reservation.lines if ln.stock_id == stock_id)
                logger.info("reservation for %s lost race on stock %d", order_id, stock_id)
                return Error(InsufficientStockError((Shortage(line.sku, line.quantity, available),)))
            case Error(ReservationExists()):
                raise IntegrityError(f"order {order_id} already holds a reservation")
            case Error(conflict):
                raise IntegrityError(f"unexpected conflict reserving for {order_id}: {conflict!r}")

    async def release(self, order_id: str, *, actor: str = SYSTEM_ACTOR) -> Reservation | None:
        """
        Return an order's reserved quantities to available.

        No-op (returns None) when the order has no active reservation, so a
        second call, or a call racing another settle, changes nothing.
        """
        return await self._settle(
            order_id,
            ReservationState.RELEASED,
            MovementType.RELEASED,
            actor=actor,
            returns_to_available=True,
        )

    async def commit(self, order_id: str, *, actor: str = SYSTEM_ACTOR) -> Reservation | None:
        """Stock has left the building: drop reserved without returning it."""
        return await self._settle(
            order_id,
            ReservationState.COMMITTED,
            MovementType.OUT,
            actor=actor,
            returns_to_available=False,
        )

    async def _settle(
        self,
        order_id: str,
        state: ReservationState,
        movement: MovementType,
        *,
        actor: str,
        returns_to_available: bool,
    ) -> Reservation | None:
        reservation = await self._store.reservation(order_id)
        if reservation is None or not reservation.is_active:
            logger.debug("no active reservation for %s; %s skipped", order_id, state.value.lower())
            return None

        back = 1 if returns_to_available else 0
        change = StockChange(
            deltas=tuple(
                StockDelta(line.stock_id, available=back * line.quantity, reserved=-line.quantity)
                for line in reservation.lines
            ),
            movements=tuple(
                StockMovement(
                    stock_id=line.stock_id,
                    sku=line.sku,
                    type=movement,
                    quantity=line.quantity,
                    reason="Order cancelled" if returns_to_available else "Order delivered",
                    reference=order_id,
                    actor=actor,
                )
                for line in reservation.lines
            ),
            settle=(order_id, state),
        )

        match await self._store.apply(change):
            case Ok(_):
                logger.info("%s reservation for %s", state.value.lower(), order_id)
                return Reservation(reservation.order_id, reservation.lines, state, reservation.created_at)
            case Error(ReservationNotActive()):
                logger.debug("reservation for %s settled concurrently", order_id)
                return None
            case Error(NegativeStock(stock_id=stock_id, reserved=reserved, delta=delta)):
                logger.error(
                    "ledger corruption: stock %d holds %d reserved, %s needs %d",
                    stock_id, reserved, order_id, -delta.reserved,
                )
                raise LedgerCorruptionError(
                    stock_id,
                    f"reserved stock {reserved} cannot cover {-delta.reserved} for {order_id}",
                )
            case Error(conflict):
                raise IntegrityError(f"unexpected conflict settling {order_id}: {conflict!r}")

    # ═══════════════════════════════════════════════════════════════════════
    # Outside the order flow
    # ═══════════════════════════════════════════════════════════════════════

    async def register(
        self,
        sku: SkuRef,
        *,
        available: int,
        min_stock_level: int = 0,
        actor: str = SYSTEM_ACTOR,
    ) -> StockItem:
        """Create the stock row and book the opening quantity as an IN movement."""
        item = await self._store.add(sku, min_stock_level=min_stock_level)
        if available <= 0:
            return item
        match await self.record(item.id, MovementType.IN, available, "Opening stock", actor=actor):
            case Ok(updated):
                return updated
            case Error(err):
                raise err

    async def adjust(
        self,
        stock_id: int,
        delta: int,
        reason: str,
        *,
        reference: str | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> Result[StockItem, InvalidAdjustmentError]:
        """Manual correction of available stock; refuses to go below zero."""
        if delta == 0:
            raise ValueError("adjustment delta must not be zero")
        return await self._change_available(stock_id, delta, MovementType.ADJUSTMENT, delta, reason, reference, actor)

    async def record(
        self,
        stock_id: int,
        kind: MovementType,
        quantity: int,
        reason: str,
        *,
        reference: str | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> Result[StockItem, InvalidAdjustmentError]:
        """Receive (IN), take back (RETURNED) or write off (DAMAGED) stock."""
        sign = _RECEIVING_SIGN.get(kind)
        if sign is None:
            raise ValueError(f"{kind} movements are produced by the order flow")
        if quantity < 1:
            raise ValueError(f"quantity must be at least 1, got {quantity}")
        return await self._change_available(stock_id, sign * quantity, kind, quantity, reason, reference, actor)

    async def _change_available(
        self,
        stock_id: int,
        delta: int,
        kind: MovementType,
        booked: int,
        reason: str,
        reference: str | None,
        actor: str,
    ) -> Result[StockItem, InvalidAdjustmentError]:
        item = await self.item(stock_id)
        change = StockChange(
            deltas=(StockDelta(stock_id, available=delta),),
            movements=(StockMovement(
                stock_id=stock_id,
                sku=item.sku,
                type=kind,
                quantity=booked,
                reason=reason,
                reference=reference,
                actor=actor,
            ),),
        )
        match await self._store.apply(change):
            case Ok((updated,)):
                logger.info("stock %d %s %+d (%s)", stock_id, kind.value, delta, reason)
                return Ok(updated)
            case Error(NegativeStock(available=available)):
                return Error(InvalidAdjustmentError(stock_id, delta, available))
            case Error(conflict):
                raise IntegrityError(f"unexpected conflict on stock {stock_id}: {conflict!r}")
        raise IntegrityError(f"store returned no row for stock {stock_id}")

    # ═══════════════════════════════════════════════════════════════════════
    # Reporting
    # ═══════════════════════════════════════════════════════════════════════

    async def alerts(self) -> list[StockAlert]:
        alerts: list[StockAlert] = []
        for item in await self._store.all():
            match item.status:
                case StockStatus.OUT_OF_STOCK:
                    kind, severity = AlertType.OUT_OF_STOCK, Severity.CRITICAL
                case StockStatus.LOW_STOCK if item.available_stock <= item.min_stock_level // 2:
                    kind, severity = AlertType.LOW_STOCK, Severity.HIGH
                case StockStatus.LOW_STOCK:
                    kind, severity = AlertType.LOW_STOCK, Severity.MEDIUM
                case _:
                    continue
            alerts.append(StockAlert(
                stock_id=item.id,
                sku=item.sku,
                type=kind,
                severity=severity,
                available_stock=item.available_stock,
                min_stock_level=item.min_stock_level,
            ))
        return alerts

    async def summary(self, *, window: timedelta = timedelta(hours=24)) -> StockSummary:
        items = await self._store.all()
        recent = await self._store.movements(since=utcnow() - window)
        return StockSummary(
            total_items=len(items),
            low_stock_items=sum(1 for i in items if i.status == StockStatus.LOW_STOCK),
            out_of_stock_items=sum(1 for i in items if i.status == StockStatus.OUT_OF_STOCK),
            recent_movements=len(recent),
        )


__all__ = ("StockLedger", "SYSTEM_ACTOR")
