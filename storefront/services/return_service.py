"""
Return Service.

Enforces, for every order:

    sum(returned_quantity of returns not REJECTED) <= order.quantity

Every mutation starts by locking the parent order row (see lock_row), so
concurrent check-then-insert units for the same order run one after another.
Stock is restored once, on the transition into APPROVED, and taken back if a
restocked return is later rejected.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.core.errors import (
    StorefrontError, NotFoundError, ValidationError, InvalidQuantityError, InternalError,
)
from storefront.database import lock_row, fetch_in_store
from storefront.models.order import Order
from storefront.models.return_order import ReturnRequest, ReturnStatus
from storefront.schemas.return_order import ReturnCreate, ReturnStatusUpdate
from storefront.services.audit_trail import append_timeline, prepend_history
from storefront.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class ReturnService:
    """Service for return requests and their effect on stock."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    @staticmethod
    def generate_rma_number() -> str:
        """Generate unique RMA number: RMA-YYYYMMDD-XXXXXX"""
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        return f"RMA-{today}-{uuid.uuid4().hex[:6].upper()}"

    async def claimed_quantity(self, order_id: uuid.UUID) -> int:
        """Units of an order already claimed by returns that are not rejected."""
        total = await self.db.scalar(
            select(func.coalesce(func.sum(ReturnRequest.returned_quantity), 0))
            .where(
                ReturnRequest.order_id == order_id,
                ReturnRequest.status != ReturnStatus.REJECTED.value,
            )
        )
        return int(total or 0)

    async def _lock_order(self, order_id: uuid.UUID, store_id: uuid.UUID) -> Order:
        if not await lock_row(self.db, Order, order_id):
            raise NotFoundError("Order not found")
        order = await fetch_in_store(self.db, Order, order_id, store_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def _remaining(self, order: Order) -> int:
        return order.quantity - await self.claimed_quantity(order.id)

    # ==================== MUTATIONS ====================

    async def create_return(
        self,
        data: ReturnCreate,
        store_id: uuid.UUID,
        actor: Optional[str] = None,
    ) -> ReturnRequest:
        """Create a SUBMITTED return after checking the order's remaining quantity."""
        if data.quantity <= 0:
            raise InvalidQuantityError("Return quantity must be a positive number.")

        try:
            order = await self._lock_order(data.order_id, store_id)
            if not order.is_active:
                raise ValidationError(
                    f"Returns cannot be created for an order in status {order.status}."
                )

            remaining = await self._remaining(order)
            if data.quantity > remaining:
                logger.warning(
                    f"Return of {data.quantity} units refused for order {order.order_number}, {remaining} remaining"
                )
                raise InvalidQuantityError(
                    f"Requested quantity exceeds remaining order quantity ({remaining} available).",
                    remaining=remaining,
                )

            return_request = ReturnRequest(
                id=uuid.uuid4(),
                rma_number=self.generate_rma_number(),
                store_id=store_id,
                order_id=order.id,
                customer_id=order.customer_id,
                reason=data.reason.strip(),
                returned_quantity=data.quantity,
                status=ReturnStatus.SUBMITTED.value,
                restocked=False,
                history=[],
            )
            prepend_history(return_request, ReturnStatus.SUBMITTED, actor, "Return request created")
            append_timeline(order, f"Return request created: {return_request.id}", settings.DEFAULT_ACTOR)
            self.db.add(return_request)

            await self.db.commit()
        except StorefrontError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating return for order {data.order_id}: {e}")
            raise InternalError("Return creation failed: Database error") from e

        logger.info(
            f"Return {return_request.rma_number} created for order {order.order_number} "
            f"({data.quantity} of {order.quantity} units, {remaining - data.quantity} remaining)"
        )
        return return_request

    async def update_return_status(
        self,
        return_id: uuid.UUID,
        data: ReturnStatusUpdate,
        store_id: uuid.UUID,
        actor: Optional[str] = None,
    ) -> ReturnRequest:
        """
        Move a return to a new status (or just record a note).

        Entering APPROVED restores the returned units to stock exactly once.
        Leaving REJECTED claims the units again, so the quantity check reruns.
        Rejecting a restocked return reserves its units again; without enough
        stock the transition is refused.
        """
        order_id = await self.db.scalar(
            select(ReturnRequest.order_id).where(
                ReturnRequest.id == return_id, ReturnRequest.store_id == store_id
            )
        )
        if order_id is None:
            raise NotFoundError("Return request not found")

        try:
            order = await self._lock_order(order_id, store_id)
            return_request = await fetch_in_store(self.db, ReturnRequest, return_id, store_id)
            if not return_request:
                raise NotFoundError("Return request not found")

            old_status = return_request.status
            new_status = data.status.value if data.status else old_status

            if old_status == ReturnStatus.REJECTED.value and new_status != old_status:
                remaining = await self._remaining(order)
                if return_request.returned_quantity > remaining:
                    logger.warning(
                        f"Return {return_request.rma_number} cannot leave REJECTED, {remaining} units remaining"
                    )
                    raise InvalidQuantityError(
                        f"Requested quantity exceeds remaining order quantity ({remaining} available).",
                        remaining=remaining,
                    )

            if (
                new_status == ReturnStatus.APPROVED.value
                and old_status != ReturnStatus.APPROVED.value
                and not return_request.restocked
            ):
                await self._restock(order, return_request)
            elif new_status == ReturnStatus.REJECTED.value and return_request.restocked:
                await self._unstock(order, return_request)

            return_request.status = new_status
            if data.refund_amount is not None:
                return_request.refund_amount = data.refund_amount
            prepend_history(return_request, new_status, actor, data.note)

            await self.db.commit()
        except StorefrontError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating return {return_id}: {e}")
            raise InternalError("Return update failed: Database error") from e

        if new_status != old_status:
            logger.info(f"Return {return_request.rma_number}: {old_status} -> {new_status}")
        return return_request

    async def _restock(self, order: Order, return_request: ReturnRequest) -> None:
        """
        Put an approved return's units back into stock.

        A void order already gave all of its units back, so only the flag is
        set: the units then no longer count as held if the order is reactivated.
        """
        if not order.is_active:
            return_request.restocked = True
            logger.info(
                f"Return {return_request.rma_number} approved on {order.status} order "
                f"{order.order_number}; no stock moved"
            )
            return
        if order.product_id is None:
            logger.warning(f"Order {order.order_number} has no product; return {return_request.rma_number} not restocked")
            return

        if await self.ledger.restore(order.product_id, return_request.returned_quantity):
            return_request.restocked = True

    async def _unstock(self, order: Order, return_request: ReturnRequest) -> None:
        """Take a rejected return's units back out of stock; the order holds them again."""
        if order.is_active and order.product_id is not None:
            await self.ledger.reserve(order.product_id, return_request.returned_quantity)
        return_request.restocked = False
        logger.info(f"Return {return_request.rma_number} rejected after restock; units held by order again")

    # ==================== QUERIES ====================

    async def get_return(self, return_id: uuid.UUID, store_id: uuid.UUID) -> ReturnRequest:
        return_request = await fetch_in_store(self.db, ReturnRequest, return_id, store_id)
        if not return_request:
            raise NotFoundError("Return request not found")
        return return_request

    async def get_returns_for_order(self, order_id: uuid.UUID) -> List[ReturnRequest]:
        """Returns of one order, newest first."""
        result = await self.db.execute(
            select(ReturnRequest)
            .where(ReturnRequest.order_id == order_id)
            .order_by(ReturnRequest.requested_at.desc())
        )
        return list(result.scalars().all())

    async def list_returns(
        self,
        store_id: uuid.UUID,
        status: Optional[ReturnStatus] = None,
        order_id: Optional[uuid.UUID] = None,
        customer_id: Optional[uuid.UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ReturnRequest], int]:
        """Get paginated returns of a store with filters."""
        filters = [ReturnRequest.store_id == store_id]

        if status:
            filters.append(ReturnRequest.status == status.value)
        if order_id:
            filters.append(ReturnRequest.order_id == order_id)
        if customer_id:
            filters.append(ReturnRequest.customer_id == customer_id)
        if date_from:
            filters.append(ReturnRequest.requested_at >= date_from)
        if date_to:
            filters.append(ReturnRequest.requested_at <= date_to)

        count_stmt = select(func.count(ReturnRequest.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar()

        stmt = (
            select(ReturnRequest)
            .where(and_(*filters))
            .order_by(ReturnRequest.requested_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total
