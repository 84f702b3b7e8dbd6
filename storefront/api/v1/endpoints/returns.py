"""
Return Request API Endpoints

Creating a return checks the order's remaining quantity; approving one puts
the returned units back into stock.
"""

from datetime import datetime
from math import ceil
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from storefront.api.deps import DB, StoreId, Actor
from storefront.config import settings
from storefront.models.return_order import ReturnStatus
from storefront.schemas.base import PaginatedResponse
from storefront.schemas.return_order import ReturnCreate, ReturnStatusUpdate, ReturnResponse
from storefront.services.return_service import ReturnService

router = APIRouter()


@router.post("", response_model=ReturnResponse, status_code=status.HTTP_201_CREATED)
async def create_return(data: ReturnCreate, db: DB, store_id: StoreId, actor: Actor):
    service = ReturnService(db)
    return await service.create_return(data, store_id, actor)


@router.get("", response_model=PaginatedResponse[ReturnResponse])
async def list_returns(
    db: DB,
    store_id: StoreId,
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[ReturnStatus] = Query(None),
    order_id: Optional[uuid.UUID] = Query(None),
    customer_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
):
    """Get paginated list of return requests, newest first."""
    service = ReturnService(db)
    returns, total = await service.list_returns(
        store_id,
        status=status,
        order_id=order_id,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        skip=(page - 1) * size,
        limit=size,
    )
    return PaginatedResponse[ReturnResponse](
        items=[ReturnResponse.model_validate(r) for r in returns],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.get("/{return_id}", response_model=ReturnResponse)
async def get_return(return_id: uuid.UUID, db: DB, store_id: StoreId):
    return await ReturnService(db).get_return(return_id, store_id)


@router.put("/{return_id}/status", response_model=ReturnResponse)
async def update_return_status(
    return_id: uuid.UUID,
    data: ReturnStatusUpdate,
    db: DB,
    store_id: StoreId,
    actor: Actor,
):
    """Move a return to a new status, or add a note when status is omitted."""
    service = ReturnService(db)
    return await service.update_return_status(return_id, data, store_id, actor)
