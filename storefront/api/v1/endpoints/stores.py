"""
Store API Endpoints

Stores are the tenants everything else is scoped to. Other endpoints take
the store id from the X-Store-Id header.
"""

import logging
import uuid

from fastapi import APIRouter, status

from storefront.api.deps import DB
from storefront.core.errors import NotFoundError
from storefront.models.store import Store
from storefront.schemas.store import StoreCreate, StoreResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
async def create_store(data: StoreCreate, db: DB):
    store = Store(id=uuid.uuid4(), name=data.name.strip(), default_currency=data.default_currency.upper())
    db.add(store)
    await db.commit()
    logger.info(f"Store {store.id} created: {store.name}")
    return store


@router.get("/{store_id}", response_model=StoreResponse)
async def get_store(store_id: uuid.UUID, db: DB):
    store = await db.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found")
    return store
