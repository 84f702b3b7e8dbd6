import asyncio
from decimal import Decimal

import pytest
import pydantic

from storefront.core.errors import InsufficientStockError, InvalidQuantityError, NotFoundError, ValidationError
from storefront.models import OrderStatus, ReturnStatus
from storefront.schemas.order import OrderCreate
from storefront.schemas.return_order import ReturnCreate, ReturnStatusUpdate
from storefront.services.order_service import OrderService
from storefront.services.return_service import ReturnService


@pytest.fixture
def place_order(db, store, make_product, contact):
    async def _place(quantity=10, stock=20):
        product = await make_product(stock=stock)
        order = await OrderService(db).create_order(
            OrderCreate(product_id=product.id, contact=contact(), quantity=quantity), store.id
        )
        return product, order
    return _place


def _approve(note=None):
    return ReturnStatusUpdate(status=ReturnStatus.APPROVED, note=note)


async def test_create_return_records_history_and_order_timeline(db, store, place_order, session_factory):
    _, order = await place_order(quantity=3)

    return_request = await ReturnService(db).create_return(
        ReturnCreate(order_id=order.id, quantity=2, reason="Wrong colour"), store.id, actor="ops@shop"
    )

    assert return_request.status == "SUBMITTED"
    assert return_request.rma_number.startswith("RMA-")
    assert return_request.customer_id == order.customer_id
    assert return_request.history[0]["status"] == "SUBMITTED"
    assert return_request.history[0]["actor"] == "ops@shop"

    refreshed = await OrderService(db).get_order(order.id, store.id)
    last = refreshed.timeline[-1]
    assert last["description"] == f"Return request created: {return_request.id}"
    assert last["actor"] == "System"


@pytest.mark.parametrize("quantity", [0, -3])
async def test_non_positive_quantity_is_rejected(db, store, place_order, quantity):
    _, order = await place_order()

    with pytest.raises(InvalidQuantityError) as exc_info:
        await ReturnService(db).create_return(
            ReturnCreate(order_id=order.id, quantity=quantity, reason="x"), store.id
        )

    assert exc_info.value.message == "Return quantity must be a positive number."


async def test_return_against_unknown_order(db, store):
    import uuid

    with pytest.raises(NotFoundError):
        await ReturnService(db).create_return(
            ReturnCreate(order_id=uuid.uuid4(), quantity=1, reason="x"), store.id
        )


async def test_remaining_quantity_caps_new_returns(db, store, place_order):
    _, order = await place_order(quantity=10)
    order_id, store_id = order.id, store.id
    service = ReturnService(db)
    first = await service.create_return(ReturnCreate(order_id=order_id, quantity=6, reason="Damaged"), store_id)
    await service.update_return_status(first.id, _approve(), store_id)

    with pytest.raises(InvalidQuantityError) as exc_info:
        await service.create_return(ReturnCreate(order_id=order_id, quantity=5, reason="More"), store_id)
    assert "exceeds remaining order quantity (4 available)" in exc_info.value.message
    assert exc_info.value.remaining == 4

    accepted = await service.create_return(ReturnCreate(order_id=order_id, quantity=4, reason="More"), store_id)
    assert accepted.returned_quantity == 4


async def test_rejected_returns_free_their_quantity(db, store, place_order):
    _, order = await place_order(quantity=4)
    service = ReturnService(db)
    first = await service.create_return(ReturnCreate(order_id=order.id, quantity=4, reason="x"), store.id)
    await service.update_return_status(first.id, ReturnStatusUpdate(status=ReturnStatus.REJECTED), store.id)

    second = await service.create_return(ReturnCreate(order_id=order.id, quantity=4, reason="y"), store.id)

    assert second.returned_quantity == 4
    # Reopening the rejected one would overshoot the order
    with pytest.raises(InvalidQuantityError):
        await service.update_return_status(first.id, ReturnStatusUpdate(status=ReturnStatus.SUBMITTED), store.id)


async def test_concurrent_returns_never_exceed_order_quantity(store, place_order, session_factory):
    _, order = await place_order(quantity=5)

    async def attempt():
        async with session_factory() as session:
            try:
                created = await ReturnService(session).create_return(
                    ReturnCreate(order_id=order.id, quantity=2, reason="race"), store.id
                )
                return created.returned_quantity
            except InvalidQuantityError:
                return 0

    results = await asyncio.gather(*(attempt() for _ in range(4)))

    assert sum(results) <= 5
    assert len([r for r in results if r]) == 2
    async with session_factory() as session:
        assert await ReturnService(session).claimed_quantity(order.id) == sum(results)


async def test_approval_restores_stock_exactly_once(db, store, place_order, stock_of):
    product, order = await place_order(quantity=5, stock=20)
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=3, reason="x"), store.id)
    assert await stock_of(product.id) == 15

    await service.update_return_status(return_request.id, _approve(), store.id)
    again = await service.update_return_status(return_request.id, _approve("second click"), store.id)

    assert await stock_of(product.id) == 18
    assert again.restocked is True
    assert [h["status"] for h in again.history] == ["APPROVED", "APPROVED", "SUBMITTED"]
    assert again.history[0]["note"] == "second click"


async def test_reapproval_after_leaving_approved_does_not_restock_twice(db, store, place_order, stock_of):
    product, order = await place_order(quantity=5, stock=20)
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=2, reason="x"), store.id)

    await service.update_return_status(return_request.id, _approve(), store.id)
    await service.update_return_status(return_request.id, ReturnStatusUpdate(status=ReturnStatus.SUBMITTED), store.id)
    await service.update_return_status(return_request.id, _approve(), store.id)

    assert await stock_of(product.id) == 17


async def test_note_only_update_keeps_status(db, store, place_order):
    _, order = await place_order()
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=1, reason="x"), store.id)

    updated = await service.update_return_status(
        return_request.id, ReturnStatusUpdate(note="Courier booked", refund_amount=Decimal("99.50")), store.id
    )

    assert updated.status == "SUBMITTED"
    assert updated.refund_amount == Decimal("99.50")
    assert updated.history[0]["note"] == "Courier booked"
    assert len(updated.history) == 2


async def test_returns_are_refused_on_void_orders(db, store, place_order):
    _, order = await place_order(quantity=2)
    await OrderService(db).update_order_status(order.id, OrderStatus.CANCELLED, store.id)

    with pytest.raises(ValidationError):
        await ReturnService(db).create_return(ReturnCreate(order_id=order.id, quantity=1, reason="x"), store.id)


async def test_approving_on_void_order_moves_no_stock(db, store, place_order, stock_of):
    product, order = await place_order(quantity=5, stock=5)
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=2, reason="x"), store.id)
    await OrderService(db).update_order_status(order.id, OrderStatus.CANCELLED, store.id)
    assert await stock_of(product.id) == 5

    approved = await service.update_return_status(return_request.id, _approve(), store.id)

    assert approved.restocked is True
    assert await stock_of(product.id) == 5


async def test_cancelling_after_approved_return_restores_only_held_units(db, store, place_order, stock_of):
    product, order = await place_order(quantity=5, stock=5)
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=2, reason="x"), store.id)
    await service.update_return_status(return_request.id, _approve(), store.id)
    assert await stock_of(product.id) == 2

    await OrderService(db).update_order_status(order.id, OrderStatus.CANCELLED, store.id)
    assert await stock_of(product.id) == 5

    await OrderService(db).update_order_status(order.id, OrderStatus.ACCEPTED, store.id)
    assert await stock_of(product.id) == 2


async def test_return_of_other_store_is_not_found(db, store, other_store, place_order):
    _, order = await place_order()
    return_request = await ReturnService(db).create_return(
        ReturnCreate(order_id=order.id, quantity=1, reason="x"), store.id
    )

    with pytest.raises(NotFoundError):
        await ReturnService(db).get_return(return_request.id, other_store.id)
    with pytest.raises(NotFoundError):
        await ReturnService(db).update_return_status(return_request.id, _approve(), other_store.id)


async def test_rejecting_a_restocked_return_takes_its_units_back(db, store, place_order, stock_of):
    product, order = await place_order(quantity=10, stock=10)
    service = ReturnService(db)
    first = await service.create_return(ReturnCreate(order_id=order.id, quantity=6, reason="x"), store.id)
    await service.update_return_status(first.id, _approve(), store.id)
    assert await stock_of(product.id) == 6

    rejected = await service.update_return_status(
        first.id, ReturnStatusUpdate(status=ReturnStatus.REJECTED), store.id
    )
    assert rejected.restocked is False
    assert await stock_of(product.id) == 0

    second = await service.create_return(ReturnCreate(order_id=order.id, quantity=10, reason="y"), store.id)
    await service.update_return_status(second.id, _approve(), store.id)

    assert await stock_of(product.id) == 10


async def test_rejecting_a_restocked_return_needs_the_units_in_stock(
    db, store, place_order, make_product, contact, stock_of, session_factory
):
    product, order = await place_order(quantity=10, stock=10)
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=6, reason="x"), store.id)
    await service.update_return_status(return_request.id, _approve(), store.id)
    await OrderService(db).create_order(
        OrderCreate(product_id=product.id, contact=contact(name="Other", email="other@x.com", phone="999", address=None), quantity=3),
        store.id,
    )
    product_id, return_id, store_id = product.id, return_request.id, store.id
    assert await stock_of(product_id) == 3

    with pytest.raises(InsufficientStockError):
        await service.update_return_status(return_id, ReturnStatusUpdate(status=ReturnStatus.REJECTED), store_id)

    assert await stock_of(product_id) == 3
    async with session_factory() as session:
        unchanged = await ReturnService(session).get_return(return_id, store_id)
        assert unchanged.status == "APPROVED"
        assert unchanged.restocked is True


async def test_return_approved_while_void_stays_in_stock_after_reactivation(db, store, place_order, stock_of):
    product, order = await place_order(quantity=10, stock=10)
    service = ReturnService(db)
    return_request = await service.create_return(ReturnCreate(order_id=order.id, quantity=6, reason="x"), store.id)
    await OrderService(db).update_order_status(order.id, OrderStatus.CANCELLED, store.id)
    await service.update_return_status(return_request.id, _approve(), store.id)
    assert await stock_of(product.id) == 10

    await OrderService(db).update_order_status(order.id, OrderStatus.ACCEPTED, store.id)

    assert await stock_of(product.id) == 6


def test_blank_reason_is_rejected():
    import uuid

    with pytest.raises(pydantic.ValidationError):
        ReturnCreate(order_id=uuid.uuid4(), quantity=1, reason="   ")

    assert ReturnCreate(order_id=uuid.uuid4(), quantity=1, reason="  Torn seam ").reason == "Torn seam"
