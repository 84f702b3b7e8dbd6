import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import (
    StorefrontError, NotFoundError, ProductNotFoundError, ValidationError, InternalError,
)
from storefront.core.normalization import clean, normalize_email, normalize_phone
from storefront.database import lock_row, fetch_in_store
from storefront.models.order import Order, OrderStatus
from storefront.models.product import Product
from storefront.schemas.order import OrderCreate, OrderUpdate
from storefront.services.audit_trail import append_timeline
from storefront.services.customer_merge_service import CustomerMergeService
from storefront.services.identity_resolver import IdentityResolver, contact_keys
from storefront.services.inventory_ledger import InventoryLedger
from storefront.services.return_service import ReturnService

logger = logging.getLogger(__name__)

_PHONE_SEPARATORS = (" ", "-", "(", ")", "+", ".", "/")


def _phone_digits(column):
    """SQL expression stripping the usual separators from a stored phone."""
    for separator in _PHONE_SEPARATORS:
        column = func.replace(column, separator, "")
    return column


class OrderService:
    """Service for managing orders and their stock."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)
        self.customers = CustomerMergeService(db)

    # ==================== ORDER NUMBER GENERATION ====================

    @staticmethod
    def generate_order_number() -> str:
        """Generate unique order number: ORD-YYYYMMDD-XXXXXX"""
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        return f"ORD-{today}-{uuid.uuid4().hex[:6].upper()}"

    # ==================== PRODUCT LOOKUP ====================

    async def resolve_product(self, store_id: uuid.UUID, product_ref: Union[uuid.UUID, str]) -> Product:
        """Find a product of the store by id, or by name ignoring case."""
        product_id = product_ref if isinstance(product_ref, uuid.UUID) else None
        if product_id is None:
            try:
                product_id = uuid.UUID(str(product_ref))
            except ValueError:
                pass

        if product_id is not None:
            stmt = select(Product).where(Product.id == product_id, Product.store_id == store_id)
        else:
            stmt = (
                select(Product)
                .where(
                    Product.store_id == store_id,
                    func.lower(Product.name) == str(product_ref).strip().lower(),
                )
                .order_by(Product.created_at.asc())
                .limit(1)
            )

        product = (await self.db.execute(stmt)).scalars().first()
        if not product:
            raise ProductNotFoundError(f"Product '{product_ref}' not found")
        return product

    # ==================== ORDER METHODS ====================

    async def create_order(
        self,
        data: OrderCreate,
        store_id: uuid.UUID,
        actor: Optional[str] = None,
    ) -> Order:
        """
        Create an order.

        Reserving stock, resolving the customer and inserting the order are
        one transaction: a refused reservation leaves no customer behind.
        """
        product = await self.resolve_product(store_id, data.product_ref)
        contact = data.contact

        try:
            await self.ledger.reserve(product.id, data.quantity)
            customer = await self.customers.resolve_or_create(store_id, contact)

            order = Order(
                id=uuid.uuid4(),
                order_number=self.generate_order_number(),
                store_id=store_id,
                customer_id=customer.id,
                product_id=product.id,
                product_name=product.name,
                customer_name=clean(contact.name) or customer.name,
                email=clean(contact.email),
                phone=clean(contact.phone),
                address=clean(contact.address),
                quantity=data.quantity,
                status=OrderStatus.PENDING.value,
                is_paid=False,
                total=(Decimal(product.price) * data.quantity).quantize(Decimal("0.01")),
                notes=clean(data.notes),
                timeline=[],
            )
            append_timeline(order, "Order created", actor or customer.name)
            self.db.add(order)

            await self.db.commit()
        except StorefrontError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating order: {e}")
            raise InternalError("Order creation failed: Database error") from e

        logger.info(
            f"Order {order.order_number} created: {data.quantity} x {product.name} "
            f"for customer {customer.id}"
        )
        return order

    async def update_order_status(
        self,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        store_id: uuid.UUID,
        actor: Optional[str] = None,
    ) -> Order:
        """Update order status, moving stock across the Active/Void partition."""
        return await self.update_order(order_id, OrderUpdate(status=new_status), store_id, actor)

    async def update_order(
        self,
        order_id: uuid.UUID,
        data: OrderUpdate,
        store_id: uuid.UUID,
        actor: Optional[str] = None,
    ) -> Order:
        """
        Administrative order edit.

        The old status is read from the locked row, never from the caller, so
        repeating the same transition moves no stock. A refused reservation
        rejects the whole edit and the order keeps its previous state.
        """
        try:
            if not await lock_row(self.db, Order, order_id):
                raise NotFoundError("Order not found")
            order = await fetch_in_store(self.db, Order, order_id, store_id)
            if not order:
                raise NotFoundError("Order not found")

            changed = []

            old_status = order.status
            if data.status is not None and data.status.value != old_status:
                delta = await self.ledger.on_status_change(order, old_status, data.status)
                order.status = data.status.value
                description = f"Status changed from {old_status} to {order.status}"
                if delta > 0:
                    description += f" ({delta} units restocked)"
                elif delta < 0:
                    description += f" ({-delta} units reserved)"
                append_timeline(order, description, actor)

            if data.quantity is not None and data.quantity != order.quantity:
                await self._change_quantity(order, data.quantity)
                changed.append("quantity")

            if data.is_paid is not None and data.is_paid != order.is_paid:
                order.is_paid = data.is_paid
                changed.append("is_paid")

            if data.notes is not None and clean(data.notes) != order.notes:
                order.notes = clean(data.notes)
                changed.append("notes")

            if data.phone is not None and clean(data.phone) != order.phone:
                order.phone = clean(data.phone)
                changed.append("phone")

            if changed:
                append_timeline(order, f"Order updated ({', '.join(changed)})", actor)

            await self.db.commit()
        except StorefrontError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating order {order_id}: {e}")
            raise InternalError("Order update failed: Database error") from e

        if order.status != old_status:
            logger.info(f"Order {order.order_number}: {old_status} -> {order.status}")
        return order

    async def _change_quantity(self, order: Order, new_quantity: int) -> None:
        claimed = await ReturnService(self.db).claimed_quantity(order.id)
        if new_quantity < claimed:
            raise ValidationError(
                f"Quantity cannot be lower than the {claimed} units already claimed by returns.",
                {"claimed": claimed},
            )

        old_quantity = order.quantity
        await self.ledger.adjust_for_quantity_edit(order, old_quantity, new_quantity)

        unit_price = Decimal(order.total) / old_quantity
        order.total = (unit_price * new_quantity).quantize(Decimal("0.01"))
        order.quantity = new_quantity

    # ==================== QUERIES ====================

    async def get_order(self, order_id: uuid.UUID, store_id: uuid.UUID) -> Order:
        order = await fetch_in_store(self.db, Order, order_id, store_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def get_order_by_number(self, order_number: str, store_id: uuid.UUID) -> Order:
        """Get order by order number."""
        result = await self.db.execute(
            select(Order).where(Order.order_number == order_number, Order.store_id == store_id)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def list_orders(
        self,
        store_id: uuid.UUID,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Get paginated orders with filters."""
        filters = [Order.store_id == store_id]

        if status:
            filters.append(Order.status == status.value)

        if customer_id:
            filters.append(Order.customer_id == customer_id)

        if date_from:
            filters.append(Order.created_at >= date_from)

        if date_to:
            filters.append(Order.created_at <= date_to)

        if search:
            search_filter = f"%{search}%"
            filters.append(
                or_(
                    Order.order_number.ilike(search_filter),
                    Order.customer_name.ilike(search_filter),
                    Order.product_name.ilike(search_filter),
                )
            )

        # Count
        count_stmt = select(func.count(Order.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar()

        # Paginate
        stmt = (
            select(Order)
            .where(and_(*filters))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def search_by_contact(
        self,
        store_id: uuid.UUID,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> List[Order]:
        """
        Orders placed by whoever owns an email or phone.

        Goes through the identity index first so orders placed with an older
        contact variant are found too, then falls back to the contact
        snapshot stored on the order.
        """
        keys = contact_keys(email=email, phone=phone)
        if not keys:
            raise ValidationError("An email or phone is required to search orders.")

        resolver = IdentityResolver(self.db)
        matches = []
        for channel, value in keys:
            customer = await resolver.find_by_identity(store_id, channel, value)
            if customer:
                matches.append(Order.customer_id == customer.id)
        if normalize_email(email):
            matches.append(func.lower(Order.email) == normalize_email(email))
        if normalize_phone(phone):
            matches.append(_phone_digits(Order.phone) == normalize_phone(phone))

        result = await self.db.execute(
            select(Order)
            .where(Order.store_id == store_id, or_(*matches))
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())
