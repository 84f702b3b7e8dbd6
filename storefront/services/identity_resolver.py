"""
Identity Resolver.

Finds the existing customer of a store that a contact belongs to. Channels are
tried in a fixed priority order and the first hit wins:

    1. email   (primary or any alternate email)
    2. phone   (primary or any alternate phone)
    3. address (primary or any alternate address)

An email match always outranks a phone match on a different customer, and a
phone match outranks an address match. Among customers matching the same
channel value the earliest created record wins.
"""
import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.customer import (
    Customer, CustomerIdentity, IdentityChannel, CONTACT_FIELDS, IDENTITY_PRIORITY,
)

logger = logging.getLogger(__name__)


def contact_keys(
    email: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
) -> List[tuple]:
    """Normalized (channel, value) pairs of a contact, in matching priority order."""
    raw = {"email": email, "phone": phone, "address": address}
    keys = []
    for channel, field in IDENTITY_PRIORITY:
        _, normalize = CONTACT_FIELDS[field]
        value = normalize(raw[field])
        if value:
            keys.append((channel, value))
    return keys


class IdentityResolver:
    """Read-only lookups against the customer identity index."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_customer(
        self,
        store_id: uuid.UUID,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Optional[Customer]:
        """Find the canonical customer for a contact, or None."""
        for channel, value in contact_keys(email, phone, address):
            customer = await self.find_by_identity(store_id, channel, value)
            if customer:
                logger.debug(f"Contact resolved to customer {customer.id} via {channel.value}")
                return customer
        return None

    async def find_by_identity(
        self,
        store_id: uuid.UUID,
        channel: IdentityChannel,
        value: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Customer]:
        """Earliest created customer holding a normalized channel value."""
        stmt = (
            select(Customer)
            .join(CustomerIdentity, CustomerIdentity.customer_id == Customer.id)
            .where(
                CustomerIdentity.store_id == store_id,
                CustomerIdentity.channel == channel.value,
                CustomerIdentity.value == value,
            )
            .order_by(Customer.created_at.asc(), Customer.id.asc())
            .limit(1)
        )
        if exclude_id is not None:
            stmt = stmt.where(Customer.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_collisions(
        self,
        store_id: uuid.UUID,
        keys: List[tuple],
        exclude_id: uuid.UUID,
    ) -> Dict[uuid.UUID, Customer]:
        """
        Other customers already holding any of the given (channel, value) keys.

        Returned in matching priority order (dicts keep insertion order).
        """
        found: Dict[uuid.UUID, Customer] = {}
        for channel, value in keys:
            customer = await self.find_by_identity(store_id, channel, value, exclude_id=exclude_id)
            if customer and customer.id not in found:
                found[customer.id] = customer
        return found


async def sync_identity_index(db: AsyncSession, customer: Customer) -> None:
    """Rebuild the identity index rows of one customer from its current fields."""
    await db.execute(
        delete(CustomerIdentity).where(CustomerIdentity.customer_id == customer.id)
    )
    for channel, value, is_primary in customer.identity_keys():
        db.add(CustomerIdentity(
            store_id=customer.store_id,
            customer_id=customer.id,
            channel=channel.value,
            value=value,
            is_primary=is_primary,
        ))
    await db.flush()


async def drop_identity_index(db: AsyncSession, customer_id: uuid.UUID) -> None:
    await db.execute(
        delete(CustomerIdentity).where(CustomerIdentity.customer_id == customer_id)
    )
