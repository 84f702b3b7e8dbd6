import logging
import uuid
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import StorefrontError, NotFoundError, ConflictError, InternalError
from storefront.database import lock_row, fetch_in_store
from storefront.models.customer import Customer, CustomerIdentity
from storefront.models.order import Order, VOID_STATUSES
from storefront.models.return_order import ReturnRequest
from storefront.schemas.contact import ContactInfo
from storefront.schemas.customer import CustomerCreate, CustomerUpdate
from storefront.services.customer_merge_service import CustomerMergeService
from storefront.services.identity_resolver import IdentityResolver, contact_keys

logger = logging.getLogger(__name__)


class CustomerService:
    """Service for customer records of a store."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.merger = CustomerMergeService(db)
        self.resolver = IdentityResolver(db)

    async def resolve_or_create_customer(self, contact: ContactInfo, store_id: uuid.UUID) -> Customer:
        """Attach a contact to its existing customer or create one, and commit."""
        try:
            customer = await self.merger.resolve_or_create(store_id, contact)
            await self.db.commit()
        except StorefrontError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error resolving customer: {e}")
            raise InternalError("Customer resolution failed: Database error") from e
        return customer

    async def create_customer(self, data: CustomerCreate, store_id: uuid.UUID) -> Customer:
        """
        Explicit customer creation.

        A contact that already belongs to a customer is merged into that
        customer instead of creating a duplicate.
        """
        return await self.resolve_or_create_customer(data.to_contact(), store_id)

    async def update_customer(
        self,
        customer_id: uuid.UUID,
        data: CustomerUpdate,
        store_id: uuid.UUID,
    ) -> Customer:
        """
        Explicit edit of primary contact fields.

        If the new email, phone or address already identifies another customer,
        this customer is folded into that one (which survives) in the same
        transaction and the surviving customer is returned.
        """
        incoming = data.to_contact()
        try:
            if not await lock_row(self.db, Customer, customer_id):
                raise NotFoundError("Customer not found")
            customer = await fetch_in_store(self.db, Customer, customer_id, store_id)
            if not customer:
                raise NotFoundError("Customer not found")

            keys = contact_keys(incoming.email, incoming.phone, incoming.address)
            collisions = await self.resolver.find_collisions(store_id, keys, exclude_id=customer.id)

            if len(collisions) > 1:
                logger.warning(f"Update of customer {customer.id} collides with {len(collisions)} customers")
                raise ConflictError(
                    "Contact details belong to more than one other customer.",
                    {"customer_ids": [str(cid) for cid in collisions]},
                )

            if collisions:
                winner_id = next(iter(collisions))
                await lock_row(self.db, Customer, winner_id)
                winner = await fetch_in_store(self.db, Customer, winner_id, store_id)
                result = await self.merger.absorb(winner, customer, incoming)
            else:
                result = await self.merger.apply_update(customer, incoming)

            await self.db.commit()
        except StorefrontError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating customer {customer_id}: {e}")
            raise InternalError("Customer update failed: Database error") from e

        if result.id != customer_id:
            logger.info(f"Customer {customer_id} merged into {result.id} on update")
        return result

    async def get_customer(self, customer_id: uuid.UUID, store_id: uuid.UUID) -> Customer:
        customer = await fetch_in_store(self.db, Customer, customer_id, store_id)
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    async def get_customer_detail(self, customer_id: uuid.UUID, store_id: uuid.UUID) -> dict:
        """Customer with orders, returns and order aggregates."""
        customer = await self.get_customer(customer_id, store_id)

        orders = list((await self.db.execute(
            select(Order)
            .where(Order.customer_id == customer.id)
            .order_by(Order.created_at.desc())
        )).scalars().all())
        returns = list((await self.db.execute(
            select(ReturnRequest)
            .where(ReturnRequest.customer_id == customer.id)
            .order_by(ReturnRequest.requested_at.desc())
        )).scalars().all())

        # Cancelled and refunded orders don't count towards spend
        total_spent = sum(
            (Decimal(o.total) for o in orders if o.status not in VOID_STATUSES),
            Decimal("0.00"),
        )

        return {
            "customer": customer,
            "orders": orders,
            "returns": returns,
            "order_count": len(orders),
            "total_spent": total_spent,
            "last_order_at": orders[0].created_at if orders else None,
        }

    async def list_customers(
        self,
        store_id: uuid.UUID,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Customer], int]:
        """Get paginated customers; search also matches alternate contacts."""
        filters = [Customer.store_id == store_id]

        if search:
            search_filter = f"%{search.strip()}%"
            filters.append(
                or_(
                    Customer.name.ilike(search_filter),
                    Customer.email.ilike(search_filter),
                    Customer.phone.ilike(search_filter),
                    Customer.id.in_(
                        select(CustomerIdentity.customer_id).where(
                            CustomerIdentity.store_id == store_id,
                            CustomerIdentity.value.like(f"%{search.strip().lower()}%"),
                        )
                    ),
                )
            )

        count_stmt = select(func.count(Customer.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar()

        stmt = (
            select(Customer)
            .where(and_(*filters))
            .order_by(Customer.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total
