# Importing this package registers every table on Base.metadata
from storefront.models.store import Store
from storefront.models.product import Product, ProductStatus
from storefront.models.customer import Customer, CustomerIdentity, IdentityChannel
from storefront.models.order import Order, OrderStatus, ACTIVE_STATUSES, VOID_STATUSES
from storefront.models.return_order import ReturnRequest, ReturnStatus

__all__ = [
    "Store",
    "Product",
    "ProductStatus",
    "Customer",
    "CustomerIdentity",
    "IdentityChannel",
    "Order",
    "OrderStatus",
    "ACTIVE_STATUSES",
    "VOID_STATUSES",
    "ReturnRequest",
    "ReturnStatus",
]
