import asyncio
import uuid

import pytest

from storefront.core.errors import InsufficientStockError, ProductNotFoundError
from storefront.services.inventory_ledger import InventoryLedger


async def test_reserve_decrements_stock(db, make_product, stock_of):
    product = await make_product(stock=10)

    await InventoryLedger(db).reserve(product.id, 4)
    await db.commit()

    assert await stock_of(product.id) == 6


async def test_reserve_refusal_reports_available_and_changes_nothing(db, make_product, stock_of):
    product = await make_product(stock=3)
    product_id = product.id

    with pytest.raises(InsufficientStockError) as exc_info:
        await InventoryLedger(db).reserve(product_id, 5)
    await db.rollback()

    assert exc_info.value.available == 3
    assert exc_info.value.to_dict()["available"] == 3
    assert "Only 3 units available" in exc_info.value.message
    assert await stock_of(product_id) == 3


async def test_reserve_unknown_product(db):
    with pytest.raises(ProductNotFoundError):
        await InventoryLedger(db).reserve(uuid.uuid4(), 1)


async def test_restore_increments_stock(db, make_product, stock_of):
    product = await make_product(stock=2)

    assert await InventoryLedger(db).restore(product.id, 5) is True
    await db.commit()

    assert await stock_of(product.id) == 7


async def test_restore_on_missing_product_is_skipped(db):
    assert await InventoryLedger(db).restore(uuid.uuid4(), 5) is False


async def test_concurrent_reservations_never_oversell(make_product, session_factory, stock_of):
    product = await make_product(stock=10)

    async def attempt(quantity):
        async with session_factory() as session:
            try:
                await InventoryLedger(session).reserve(product.id, quantity)
                await session.commit()
                return quantity
            except InsufficientStockError:
                await session.rollback()
                return 0

    results = await asyncio.gather(*(attempt(3) for _ in range(8)))

    reserved = sum(results)
    assert reserved == 9
    assert len([r for r in results if r]) == 3
    assert await stock_of(product.id) == 10 - reserved


async def test_concurrent_mixed_reservations_keep_stock_consistent(make_product, session_factory, stock_of):
    product = await make_product(stock=7)
    quantities = [5, 4, 3, 2, 1, 1]

    async def attempt(quantity):
        async with session_factory() as session:
            try:
                await InventoryLedger(session).reserve(product.id, quantity)
                await session.commit()
                return quantity
            except InsufficientStockError:
                await session.rollback()
                return 0

    results = await asyncio.gather(*(attempt(q) for q in quantities))

    final = await stock_of(product.id)
    assert final >= 0
    assert final == 7 - sum(results)
    # Any refused request must really have exceeded what was left
    assert all(q > final for q, r in zip(quantities, results) if r == 0)
