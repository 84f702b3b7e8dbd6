from datetime import datetime
from math import ceil
from typing import List, Optional
import uuid

from fastapi import APIRouter, Query, status

from storefront.api.deps import DB, StoreId, Actor
from storefront.config import settings
from storefront.models.order import OrderStatus
from storefront.schemas.base import PaginatedResponse
from storefront.schemas.order import (
    OrderCreate, OrderStatusUpdate, OrderUpdate, OrderResponse, OrderDetailResponse,
)
from storefront.schemas.return_order import ReturnResponse
from storefront.services.order_service import OrderService
from storefront.services.return_service import ReturnService

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, db: DB, store_id: StoreId, actor: Actor):
    """
    Create an order.

    Reserves stock and attaches the contact to its customer (creating one if
    needed). Fails with 409 and the available quantity when stock is short.
    """
    service = OrderService(db)
    return await service.create_order(data, store_id, actor)


@router.get("", response_model=PaginatedResponse[OrderResponse])
async def list_orders(
    db: DB,
    store_id: StoreId,
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[OrderStatus] = Query(None),
    customer_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, description="Search by order number, customer or product"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
):
    """Get paginated list of orders."""
    service = OrderService(db)
    orders, total = await service.list_orders(
        store_id,
        status=status,
        customer_id=customer_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        skip=(page - 1) * size,
        limit=size,
    )
    return PaginatedResponse[OrderResponse](
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.get("/search", response_model=List[OrderResponse])
async def search_orders_by_contact(
    db: DB,
    store_id: StoreId,
    email: Optional[str] = Query(None),
    phone: Optional[str] = Query(None),
):
    """Orders of whoever owns an email or phone, including older contact variants."""
    service = OrderService(db)
    return await service.search_by_contact(store_id, email=email, phone=phone)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: uuid.UUID, db: DB, store_id: StoreId):
    """Get order with its return requests."""
    order = await OrderService(db).get_order(order_id, store_id)
    returns = await ReturnService(db).get_returns_for_order(order.id)

    response = OrderDetailResponse.model_validate(order)
    response.returns = [ReturnResponse.model_validate(r) for r in returns]
    return response


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    db: DB,
    store_id: StoreId,
    actor: Actor,
):
    """Change order status; cancelling restocks, reactivating re-reserves."""
    service = OrderService(db)
    return await service.update_order_status(order_id, data.status, store_id, actor)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: uuid.UUID,
    data: OrderUpdate,
    db: DB,
    store_id: StoreId,
    actor: Actor,
):
    service = OrderService(db)
    return await service.update_order(order_id, data, store_id, actor)
