# Services module
from storefront.services.identity_resolver import IdentityResolver
from storefront.services.customer_merge_service import CustomerMergeService
from storefront.services.inventory_ledger import InventoryLedger
from storefront.services.return_service import ReturnService
from storefront.services.order_service import OrderService
from storefront.services.customer_service import CustomerService
from storefront.services.product_service import ProductService

__all__ = [
    "IdentityResolver",
    "CustomerMergeService",
    "InventoryLedger",
    "ReturnService",
    "OrderService",
    "CustomerService",
    "ProductService",
]
