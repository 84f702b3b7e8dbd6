from typing import Annotated, Optional
import uuid

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db


async def get_store_id(x_store_id: Annotated[uuid.UUID, Header()]) -> uuid.UUID:
    """Store the request is scoped to, from the X-Store-Id header."""
    return x_store_id


async def get_actor(x_actor: Annotated[Optional[str], Header()] = None) -> Optional[str]:
    """
    Opaque actor recorded on timeline and history entries.

    None when the header is absent; the audit trail then records
    settings.DEFAULT_ACTOR (or the customer name for a new order).
    """
    return (x_actor or "").strip() or None


DB = Annotated[AsyncSession, Depends(get_db)]
StoreId = Annotated[uuid.UUID, Depends(get_store_id)]
Actor = Annotated[Optional[str], Depends(get_actor)]
