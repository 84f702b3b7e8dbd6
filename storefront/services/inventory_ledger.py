"""
Inventory Ledger.

Every stock movement is a single conditional UPDATE on products.stock_quantity,
so concurrent reservations cannot oversell:

    UPDATE products SET stock_quantity = stock_quantity - :q
    WHERE id = :id AND stock_quantity >= :q

Order status changes move stock only when crossing the Active/Void partition.
The amount moved is the order's held quantity, i.e. its quantity minus the
units already put back by approved returns.
"""
import logging
import uuid

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enum_utils import get_enum_value
from storefront.core.errors import InsufficientStockError, ProductNotFoundError, ValidationError
from storefront.database import utc_now
from storefront.models.order import Order, is_active_status
from storefront.models.product import Product
from storefront.models.return_order import ReturnRequest

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Atomic stock reservation and restoration."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def reserve(self, product_id: uuid.UUID, quantity: int) -> None:
        """
        Take ``quantity`` units out of stock.

        Raises InsufficientStockError (with the available quantity) and leaves
        stock untouched when not enough units are on hand.
        """
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive number.")

        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            logger.debug(f"Reserved {quantity} units of product {product_id}")
            return

        available = await self.db.scalar(
            select(Product.stock_quantity).where(Product.id == product_id)
        )
        if available is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        logger.warning(f"Reservation of {quantity} units of product {product_id} refused, {available} available")
        raise InsufficientStockError(product_id, quantity, available)

    async def restore(self, product_id: uuid.UUID, quantity: int) -> bool:
        """Put ``quantity`` units back into stock. Returns False if the product is gone."""
        if quantity <= 0:
            return False

        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + quantity, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Cannot restore {quantity} units: product {product_id} no longer exists")
            return False
        logger.debug(f"Restored {quantity} units of product {product_id}")
        return True

    async def held_quantity(self, order: Order) -> int:
        """Units of the order currently out of stock on its behalf."""
        restocked = await self.db.scalar(
            select(func.coalesce(func.sum(ReturnRequest.returned_quantity), 0))
            .where(ReturnRequest.order_id == order.id, ReturnRequest.restocked.is_(True))
        )
        return max(order.quantity - int(restocked or 0), 0)

    async def on_status_change(self, order: Order, old_status, new_status) -> int:
        """
        Move stock for a status transition.

        Returns the stock delta: positive when units were restored, negative
        when they were reserved, 0 when the transition stays within a partition.
        """
        old_active = is_active_status(get_enum_value(old_status))
        new_active = is_active_status(get_enum_value(new_status))
        if old_active == new_active:
            return 0

        if order.product_id is None:
            logger.warning(f"Order {order.order_number} has no product; status change moves no stock")
            return 0

        held = await self.held_quantity(order)
        if held == 0:
            return 0

        if old_active:
            await self.restore(order.product_id, held)
            return held

        await self.reserve(order.product_id, held)
        return -held

    async def adjust_for_quantity_edit(self, order: Order, old_quantity: int, new_quantity: int) -> int:
        """Reserve or restore the difference of a quantity edit on an active order."""
        if not order.is_active or order.product_id is None:
            return 0

        delta = new_quantity - old_quantity
        if delta > 0:
            await self.reserve(order.product_id, delta)
        elif delta < 0:
            await self.restore(order.product_id, -delta)
        return -delta
