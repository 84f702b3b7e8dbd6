from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from storefront.models.return_order import ReturnStatus
from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema
from storefront.core.enum_utils import normalize_to_uppercase


class HistoryEntry(BaseModel):
    """One entry of a return's history (newest first)."""
    id: str
    timestamp: datetime
    status: str
    actor: str
    note: str = ""


class ReturnCreate(BaseCreateSchema):
    """
    Return request creation.

    quantity is range-checked by the service against the order's remaining
    quantity, so it is not constrained here.
    """
    order_id: uuid.UUID
    quantity: int
    reason: str = Field(..., min_length=1)

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ReturnStatusUpdate(BaseModel):
    """Return status change; omit status to only add a note."""
    status: Optional[ReturnStatus] = None
    note: Optional[str] = None
    refund_amount: Optional[Decimal] = Field(None, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def uppercase_status(cls, v):
        return normalize_to_uppercase(v)


class ReturnResponse(BaseResponseSchema):
    """Return request response schema."""
    id: uuid.UUID
    rma_number: str
    store_id: uuid.UUID
    order_id: uuid.UUID
    customer_id: Optional[uuid.UUID] = None
    reason: str
    returned_quantity: int
    status: str
    refund_amount: Decimal
    restocked: bool
    history: List[HistoryEntry] = []
    requested_at: datetime
    updated_at: datetime
