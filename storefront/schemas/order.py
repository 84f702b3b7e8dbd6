from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from storefront.models.order import OrderStatus
from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from storefront.core.enum_utils import normalize_to_uppercase
from storefront.schemas.contact import ContactInfo
from storefront.schemas.return_order import ReturnResponse


# ==================== TIMELINE SCHEMAS ====================

class TimelineEntry(BaseModel):
    """One entry of the append-only order timeline."""
    id: str
    description: str
    timestamp: datetime
    actor: str


# ==================== ORDER SCHEMAS ====================

class OrderCreate(BaseCreateSchema):
    """
    Order creation schema.

    The product is referenced either by id or by name (case-insensitive
    within the store).
    """
    product_id: Optional[uuid.UUID] = None
    product_name: Optional[str] = None
    contact: ContactInfo
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def require_product_ref(self):
        if self.product_id is None and not (self.product_name or "").strip():
            raise ValueError("Either product_id or product_name is required")
        return self

    @property
    def product_ref(self):
        return self.product_id or self.product_name


class OrderStatusUpdate(BaseModel):
    """Order status change; status is accepted in any case."""
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def uppercase_status(cls, v):
        return normalize_to_uppercase(v)


class OrderUpdate(BaseUpdateSchema):
    """Administrative order edit."""
    status: Optional[OrderStatus] = None
    quantity: Optional[int] = Field(None, ge=1)
    is_paid: Optional[bool] = None
    notes: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("status", mode="before")
    @classmethod
    def uppercase_status(cls, v):
        return normalize_to_uppercase(v)


class OrderResponse(BaseResponseSchema):
    """Order response schema."""
    id: uuid.UUID
    order_number: str
    store_id: uuid.UUID
    customer_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    product_name: str
    customer_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    quantity: int
    status: str  # VARCHAR in DB
    is_paid: bool
    total: Decimal
    notes: Optional[str] = None
    timeline: List[TimelineEntry] = []
    created_at: datetime
    updated_at: datetime


class OrderDetailResponse(OrderResponse):
    """Order with its return requests (newest first)."""
    returns: List[ReturnResponse] = []
