import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from storefront.database import Base
from storefront.db_types import JSONType, UUIDType


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Statuses in which the order's units are held out of stock
ACTIVE_STATUSES = frozenset({
    OrderStatus.PENDING.value,
    OrderStatus.ACCEPTED.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.COMPLETED.value,
})
# Statuses in which the order holds no stock
VOID_STATUSES = frozenset({
    OrderStatus.CANCELLED.value,
    OrderStatus.REFUNDED.value,
})


def is_active_status(status) -> bool:
    value = status.value if isinstance(status, Enum) else status
    return value in ACTIVE_STATUSES


class Order(Base):
    """
    Single-product storefront order.

    quantity is fixed at creation except through an administrative edit.
    timeline is an append-only list of {id, description, timestamp, actor}.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)

    store_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Snapshot of what was ordered and who ordered it
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PENDING",
        index=True,
        comment="PENDING, ACCEPTED, SHIPPED, COMPLETED, CANCELLED, REFUNDED"
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    timeline: Mapped[List[dict]] = mapped_column(JSONType, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    @property
    def is_active(self) -> bool:
        return is_active_status(self.status)

    def __repr__(self) -> str:
        return f"<Order(number='{self.order_number}', status='{self.status}')>"
