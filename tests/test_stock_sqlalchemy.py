from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from kungfu import Error, Ok

from storefront.errors import InsufficientStockError
from storefront.stock import (
    MovementType,
    ReservationState,
    SQLAlchemyStockStore,
    StockLedger,
    create_stock_database,
)
from tests.conftest import SKU_A, SKU_B


@pytest_asyncio.fixture
async def sql_ledger(tmp_path: Path) -> AsyncIterator[StockLedger]:
    sessions, engine = await create_stock_database(f"sqlite+aiosqlite:///{tmp_path / 'stock.db'}")
    ledger = StockLedger(SQLAlchemyStockStore(sessions))
    await ledger.register(SKU_A, available=10, min_stock_level=2)
    await ledger.register(SKU_B, available=1)
    yield ledger
    await engine.dispose()


@pytest.mark.asyncio
async def test_reserve_and_release_round_trip(sql_ledger: StockLedger) -> None:
    reserved = await sql_ledger.reserve("ord_1", [(SKU_A, 3), (SKU_B, 1)])
    assert isinstance(reserved, Ok)

    a = await sql_ledger.find(SKU_A)
    assert a is not None and (a.available_stock, a.reserved_stock) == (7, 3)

    released = await sql_ledger.release("ord_1")
    assert released is not None and released.state == ReservationState.RELEASED
    assert await sql_ledger.release("ord_1") is None

    b = await sql_ledger.find(SKU_B)
    assert b is not None and (b.available_stock, b.reserved_stock) == (1, 0)
    kinds = [m.type for m in await sql_ledger.movements(reference="ord_1")]
    assert kinds.count(MovementType.RESERVED) == 2
    assert kinds.count(MovementType.RELEASED) == 2


@pytest.mark.asyncio
async def test_short_reservation_leaves_rows_untouched(sql_ledger: StockLedger) -> None:
    match await sql_ledger.reserve("ord_1", [(SKU_A, 2), (SKU_B, 2)]):
        case Error(InsufficientStockError()):
            pass
        case other:
            pytest.fail(f"expected shortage, got {other!r}")

    a = await sql_ledger.find(SKU_A)
    assert a is not None and a.available_stock == 10
    assert await sql_ledger.reservation("ord_1") is None


@pytest.mark.asyncio
async def test_commit_consumes_reserved_stock(sql_ledger: StockLedger) -> None:
    await sql_ledger.reserve("ord_1", [(SKU_A, 4)])

    committed = await sql_ledger.commit("ord_1")

    assert committed is not None
    a = await sql_ledger.find(SKU_A)
    assert a is not None and (a.available_stock, a.reserved_stock) == (6, 0)
    reservation = await sql_ledger.reservation("ord_1")
    assert reservation is not None and reservation.state == ReservationState.COMMITTED


@pytest.mark.asyncio
async def test_adjustment_below_zero_rolls_back(sql_ledger: StockLedger) -> None:
    b = await sql_ledger.find(SKU_B)
    assert b is not None

    result = await sql_ledger.adjust(b.id, -5, "shrinkage")

    assert isinstance(result, Error)
    after = await sql_ledger.find(SKU_B)
    assert after is not None and after.available_stock == 1
    assert [m.type for m in await sql_ledger.movements(stock_id=b.id)] == [MovementType.IN]
