import uuid

from fastapi import APIRouter, status

from storefront.api.deps import DB, StoreId
from storefront.schemas.product import ProductCreate, ProductResponse
from storefront.services.product_service import ProductService

router = APIRouter()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, db: DB, store_id: StoreId):
    return await ProductService(db).create_product(data, store_id)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: uuid.UUID, db: DB, store_id: StoreId):
    return await ProductService(db).get_product(product_id, store_id)
