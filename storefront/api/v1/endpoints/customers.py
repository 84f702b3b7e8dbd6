from math import ceil
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from storefront.api.deps import DB, StoreId
from storefront.config import settings
from storefront.schemas.base import PaginatedResponse
from storefront.schemas.contact import ContactInfo
from storefront.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerDetailResponse,
)
from storefront.schemas.order import OrderResponse
from storefront.schemas.return_order import ReturnResponse
from storefront.services.customer_service import CustomerService

router = APIRouter()


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(data: CustomerCreate, db: DB, store_id: StoreId):
    """
    Create a customer.

    If the email, phone or address already belongs to a customer of the
    store, that customer is returned with the new details merged in.
    """
    service = CustomerService(db)
    return await service.create_customer(data, store_id)


@router.post("/resolve", response_model=CustomerResponse)
async def resolve_customer(contact: ContactInfo, db: DB, store_id: StoreId):
    """Find the customer a contact belongs to, or create one."""
    service = CustomerService(db)
    return await service.resolve_or_create_customer(contact, store_id)


@router.get("", response_model=PaginatedResponse[CustomerResponse])
async def list_customers(
    db: DB,
    store_id: StoreId,
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, description="Search by name, email or phone"),
):
    """Get paginated list of customers."""
    service = CustomerService(db)
    customers, total = await service.list_customers(
        store_id, search=search, skip=(page - 1) * size, limit=size
    )
    return PaginatedResponse[CustomerResponse](
        items=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.get("/{customer_id}", response_model=CustomerDetailResponse)
async def get_customer(customer_id: uuid.UUID, db: DB, store_id: StoreId):
    """Get customer with orders, returns and order totals."""
    detail = await CustomerService(db).get_customer_detail(customer_id, store_id)

    response = CustomerDetailResponse.model_validate(detail["customer"])
    response.orders = [OrderResponse.model_validate(o) for o in detail["orders"]]
    response.returns = [ReturnResponse.model_validate(r) for r in detail["returns"]]
    response.order_count = detail["order_count"]
    response.total_spent = detail["total_spent"]
    response.last_order_at = detail["last_order_at"]
    return response


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(customer_id: uuid.UUID, data: CustomerUpdate, db: DB, store_id: StoreId):
    """
    Update primary contact fields.

    When the new details belong to another customer the two are merged and
    the surviving customer (which may have a different id) is returned.
    """
    service = CustomerService(db)
    return await service.update_customer(customer_id, data, store_id)
