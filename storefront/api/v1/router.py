from fastapi import APIRouter

from storefront.api.v1.endpoints import (
    stores,
    products,
    customers,
    orders,
    returns,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(
    stores.router,
    prefix="/stores",
    tags=["Stores"]
)

api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)

api_router.include_router(
    customers.router,
    prefix="/customers",
    tags=["Customers"]
)

api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

api_router.include_router(
    returns.router,
    prefix="/returns",
    tags=["Returns"]
)
