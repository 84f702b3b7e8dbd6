from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import Field, field_validator

from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from storefront.schemas.contact import ContactInfo, OptionalEmail, strip_value
from storefront.schemas.order import OrderResponse
from storefront.schemas.return_order import ReturnResponse


class CustomerCreate(BaseCreateSchema):
    """Explicit customer creation (resolved against existing customers first)."""
    name: str = Field(..., min_length=1, max_length=255)
    email: OptionalEmail = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return strip_value(v)

    def to_contact(self) -> ContactInfo:
        return ContactInfo(**self.model_dump())


class CustomerUpdate(BaseUpdateSchema):
    """
    Explicit edit of primary contact fields.

    Omitted fields are untouched; an empty string clears email, phone or
    address. Setting a value that belongs to another customer merges the two.
    """
    name: Optional[str] = Field(None, max_length=255)
    email: OptionalEmail = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return strip_value(v)

    def to_contact(self) -> ContactInfo:
        return ContactInfo(**self.model_dump())


class CustomerResponse(BaseResponseSchema):
    """Customer response schema."""
    id: uuid.UUID
    store_id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    alternative_names: List[str] = []
    alternative_emails: List[str] = []
    alternative_phones: List[str] = []
    alternative_addresses: List[str] = []
    created_at: datetime
    updated_at: datetime


class CustomerDetailResponse(CustomerResponse):
    """Customer with its orders, returns and order aggregates."""
    orders: List[OrderResponse] = []
    returns: List[ReturnResponse] = []
    order_count: int = 0
    total_spent: Decimal = Decimal("0.00")
    last_order_at: Optional[datetime] = None
