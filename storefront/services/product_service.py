import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import ProductNotFoundError, InternalError
from storefront.database import fetch_in_store
from storefront.models.product import Product, ProductStatus
from storefront.schemas.product import ProductCreate

logger = logging.getLogger(__name__)


class ProductService:
    """Seeding and reading products; stock moves only through InventoryLedger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_product(self, data: ProductCreate, store_id: uuid.UUID) -> Product:
        product = Product(
            id=uuid.uuid4(),
            store_id=store_id,
            name=data.name.strip(),
            price=data.price,
            stock_quantity=data.stock_quantity,
            status=ProductStatus.ACTIVE.value,
        )
        self.db.add(product)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating product: {e}")
            raise InternalError("Product creation failed: Database error") from e
        logger.info(f"Product {product.name} created with {product.stock_quantity} units")
        return product

    async def get_product(self, product_id: uuid.UUID, store_id: uuid.UUID) -> Product:
        product = await fetch_in_store(self.db, Product, product_id, store_id)
        if not product:
            raise ProductNotFoundError(f"Product {product_id} not found")
        return product
