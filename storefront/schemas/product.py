from datetime import datetime
from decimal import Decimal
import uuid

from pydantic import Field

from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema


class ProductCreate(BaseCreateSchema):
    """Product creation schema."""
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(Decimal("0.00"), ge=0)
    stock_quantity: int = Field(0, ge=0)


class ProductResponse(BaseResponseSchema):
    """Product response schema."""
    id: uuid.UUID
    store_id: uuid.UUID
    name: str
    price: Decimal
    stock_quantity: int
    status: str
    created_at: datetime
    updated_at: datetime
