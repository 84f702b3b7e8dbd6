from datetime import datetime
import uuid

from pydantic import Field

from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema


class StoreCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    default_currency: str = Field("PKR", min_length=3, max_length=3)


class StoreResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    default_currency: str
    created_at: datetime
