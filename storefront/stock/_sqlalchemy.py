"""
SQLAlchemy stock store.

Every StockChange runs in one transaction. Each row moves through a
conditional UPDATE:

    UPDATE stock_items
       SET available_stock = available_stock + :da,
           reserved_stock  = reserved_stock  + :dr
     WHERE id = :id
       AND available_stock + :da >= 0
       AND reserved_stock  + :dr >= 0

A zero rowcount means another transaction got there first (or the change is
simply too big); the whole transaction is rolled back.

Usage:
    sessions, engine = await create_stock_database("sqlite+aiosqlite:///shop.db")
    ledger = StockLedger(SQLAlchemyStockStore(sessions))
"""

from __future__ import annotations

from datetime import UTC, datetime

from kungfu import Error, Ok, Result
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, select, update
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from storefront._types import SkuRef, utcnow
from storefront.errors import NotFoundError
from storefront.stock._store import fold_deltas
from storefront.stock._types import (
    ApplyConflict,
    MovementType,
    NegativeStock,
    Reservation,
    ReservationExists,
    ReservationLine,
    ReservationNotActive,
    ReservationState,
    StockChange,
    StockItem,
    StockMovement,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


class StockBase(DeclarativeBase):
    pass


class StockItemRow(StockBase):
    __tablename__ = "stock_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    available_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_domain(self) -> StockItem:
        return StockItem(
            id=self.id,
            sku=SkuRef(self.product_id, self.variation_id),
            available_stock=self.available_stock,
            reserved_stock=self.reserved_stock,
            min_stock_level=self.min_stock_level,
            updated_at=_aware(self.updated_at),
        )


class StockMovementRow(StockBase):
    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stock_id: Mapped[int] = mapped_column(ForeignKey("stock_items.id"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, m: StockMovement) -> StockMovementRow:
        return cls(
            stock_id=m.stock_id,
            product_id=m.sku.product_id,
            variation_id=m.sku.variation_id,
            type=m.type.value,
            quantity=m.quantity,
            reason=m.reason,
            reference=m.reference,
            actor=m.actor,
            created_at=m.created_at,
        )

    def to_domain(self) -> StockMovement:
        return StockMovement(
            id=self.id,
            stock_id=self.stock_id,
            sku=SkuRef(self.product_id, self.variation_id),
            type=MovementType(self.type),
            quantity=self.quantity,
            reason=self.reason,
            reference=self.reference,
            actor=self.actor,
            created_at=_aware(self.created_at),
        )


class ReservationRow(StockBase):
    """One row per reserved line; all rows of an order share its state."""

    __tablename__ = "stock_reservations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    stock_id: Mapped[int] = mapped_column(ForeignKey("stock_items.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class _Abort(Exception):
    """Rolls the transaction back and carries the conflict out."""

    def __init__(self, conflict: ApplyConflict) -> None:
        self.conflict = conflict
        super().__init__(repr(conflict))


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStockStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def add(self, sku: SkuRef, *, min_stock_level: int) -> StockItem:
        async with self._sessions() as session, session.begin():
            existing = await session.scalar(self._sku_query(sku))
            if existing is not None:
                raise ValueError(f"{sku} already has a stock row")
            row = StockItemRow(
                product_id=sku.product_id,
                variation_id=sku.variation_id,
                available_stock=0,
                reserved_stock=0,
                min_stock_level=min_stock_level,
                updated_at=utcnow(),
            )
            session.add(row)
            await session.flush()
            return row.to_domain()

    async def get(self, stock_id: int) -> StockItem | None:
        async with self._sessions() as session:
            row = await session.get(StockItemRow, stock_id)
            return None if row is None else row.to_domain()

    async def find(self, sku: SkuRef) -> StockItem | None:
        async with self._sessions() as session:
            row = await session.scalar(self._sku_query(sku))
            return None if row is None else row.to_domain()

    async def all(self) -> list[StockItem]:
        async with self._sessions() as session:
            rows = await session.scalars(select(StockItemRow).order_by(StockItemRow.id))
            return [r.to_domain() for r in rows]

    async def reservation(self, order_id: str) -> Reservation | None:
        async with self._sessions() as session:
            rows = list(await session.scalars(
                select(ReservationRow)
                .where(ReservationRow.order_id == order_id)
                .order_by(ReservationRow.id)
            ))
        if not rows:
            return None
        return Reservation(
            order_id=order_id,
            lines=tuple(
                ReservationLine(r.stock_id, SkuRef(r.product_id, r.variation_id), r.quantity)
                for r in rows
            ),
            state=ReservationState(rows[0].state),
            created_at=_aware(rows[0].created_at),
        )

    async def movements(
        self,
        *,
        stock_id: int | None = None,
        reference: str | None = None,
        since: datetime | None = None,
    ) -> list[StockMovement]:
        query = select(StockMovementRow).order_by(StockMovementRow.id)
        if stock_id is not None:
            query = query.where(StockMovementRow.stock_id == stock_id)
        if reference is not None:
            query = query.where(StockMovementRow.reference == reference)
        if since is not None:
            query = query.where(StockMovementRow.created_at >= since)
        async with self._sessions() as session:
            return [r.to_domain() for r in await session.scalars(query)]

    async def apply(self, change: StockChange) -> Result[tuple[StockItem, ...], ApplyConflict]:
        deltas = fold_deltas(change.deltas)
        try:
            async with self._sessions() as session, session.begin():
                await self._move_reservation(session, change)

                now = utcnow()
                for d in deltas:
                    outcome = await session.execute(
                        update(StockItemRow)
                        .where(
                            StockItemRow.id == d.stock_id,
                            StockItemRow.available_stock + d.available >= 0,
                            StockItemRow.reserved_stock + d.reserved >= 0,
                        )
                        .values(
                            available_stock=StockItemRow.available_stock + d.available,
                            reserved_stock=StockItemRow.reserved_stock + d.reserved,
                            updated_at=now,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if outcome.rowcount == 0:
                        current = await session.get(StockItemRow, d.stock_id)
                        if current is None:
                            raise NotFoundError("stock item", d.stock_id)
                        raise _Abort(NegativeStock(
                            d.stock_id, current.available_stock, current.reserved_stock, d,
                        ))

                session.add_all(StockMovementRow.from_domain(m) for m in change.movements)
                await session.flush()

                rows = await session.scalars(
                    select(StockItemRow)
                    .where(StockItemRow.id.in_([d.stock_id for d in deltas]))
                    .order_by(StockItemRow.id)
                    .execution_options(populate_existing=True)
                )
                return Ok(tuple(r.to_domain() for r in rows))
        except _Abort as abort:
            return Error(abort.conflict)

    async def _move_reservation(self, session: AsyncSession, change: StockChange) -> None:
        opening = change.open_reservation
        if opening is not None:
            taken = await session.scalar(
                select(ReservationRow.id).where(ReservationRow.order_id == opening.order_id).limit(1)
            )
            if taken is not None:
                raise _Abort(ReservationExists(opening.order_id))
            session.add_all(
                ReservationRow(
                    order_id=opening.order_id,
                    stock_id=line.stock_id,
                    product_id=line.sku.product_id,
                    variation_id=line.sku.variation_id,
                    quantity=line.quantity,
                    state=opening.state.value,
                    created_at=opening.created_at,
                )
                for line in opening.lines
            )

        if change.settle is not None:
            order_id, state = change.settle
            outcome = await session.execute(
                update(ReservationRow)
                .where(
                    ReservationRow.order_id == order_id,
                    ReservationRow.state == ReservationState.ACTIVE.value,
                )
                .values(state=state.value)
                .execution_options(synchronize_session=False)
            )
            if outcome.rowcount == 0:
                raise _Abort(ReservationNotActive(order_id))

    @staticmethod
    def _sku_query(sku: SkuRef):
        query = select(StockItemRow).where(StockItemRow.product_id == sku.product_id)
        if sku.variation_id is None:
            return query.where(StockItemRow.variation_id.is_(None))
        return query.where(StockItemRow.variation_id == sku.variation_id)


async def create_stock_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(StockBase.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "StockBase",
    "StockItemRow",
    "StockMovementRow",
    "ReservationRow",
    "SQLAlchemyStockStore",
    "create_stock_database",
)
