"""
Customer Merge Service.

Reconciles incoming contact data into canonical customer records:

- resolve_or_create(): attach a contact to its existing customer (merging any
  new contact variants into the alternates) or create a new customer.
- merge(): fold a contact into an existing customer without ever replacing a
  non-empty primary field. Idempotent.
- apply_update(): explicit edit of primary fields; the previous value is kept
  as an alternate.
- absorb(): collision resolution. A losing customer is folded into the
  winning one, its orders and returns are re-pointed, and it is deleted.

None of these methods commit. Callers own the transaction so that the whole
unit (for example re-point + delete) commits or rolls back together.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import ValidationError
from storefront.core.normalization import clean
from storefront.models.customer import Customer, CONTACT_FIELDS
from storefront.models.order import Order
from storefront.models.return_order import ReturnRequest
from storefront.schemas.contact import ContactInfo
from storefront.services.identity_resolver import (
    IdentityResolver, sync_identity_index, drop_identity_index,
)

logger = logging.getLogger(__name__)


def add_variant(customer: Customer, field: str, raw_value: Optional[str]) -> bool:
    """
    Record one contact value on a customer without touching a non-empty primary.

    Returns True when the customer changed.
    """
    attr, normalize = CONTACT_FIELDS[field]
    raw = clean(raw_value)
    normalized = normalize(raw)
    if not normalized:
        return False

    primary = getattr(customer, field)
    if not normalize(primary):
        setattr(customer, field, raw)
        return True
    if normalized == normalize(primary):
        return False

    alternates = customer.alternates(field)
    if any(normalize(existing) == normalized for existing in alternates):
        return False
    setattr(customer, attr, alternates + [raw])
    return True


def set_primary(customer: Customer, field: str, raw_value: Optional[str]) -> bool:
    """
    Replace a primary contact field, keeping the previous value as an alternate.

    The new value is removed from the alternates so a value is never both
    primary and alternate. An empty value clears the field.
    """
    attr, normalize = CONTACT_FIELDS[field]
    raw = clean(raw_value)
    normalized = normalize(raw)
    previous = getattr(customer, field)

    if field == "name" and not normalized:
        raise ValidationError("Customer name cannot be empty.")
    if raw == previous:
        return False

    alternates = [a for a in customer.alternates(field) if normalize(a) != normalized or not normalized]
    previous_normalized = normalize(previous)
    if previous_normalized and previous_normalized != normalized:
        if not any(normalize(a) == previous_normalized for a in alternates):
            alternates.append(previous.strip())

    setattr(customer, field, raw)
    setattr(customer, attr, alternates)
    return True


class CustomerMergeService:
    """Identity merge operations on customers of a store."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.resolver = IdentityResolver(db)

    async def resolve_or_create(self, store_id: uuid.UUID, contact: ContactInfo) -> Customer:
        """Return the customer a contact belongs to, creating one if none matches."""
        existing = await self.resolver.find_customer(
            store_id,
            email=contact.email,
            phone=contact.phone,
            address=contact.address,
        )
        if existing:
            return await self.merge(existing, contact)

        name = clean(contact.name)
        if not name:
            raise ValidationError("Customer name is required.")

        customer = Customer(
            id=uuid.uuid4(),
            store_id=store_id,
            name=name,
            email=clean(contact.email),
            phone=clean(contact.phone),
            address=clean(contact.address),
            alternative_names=[],
            alternative_emails=[],
            alternative_phones=[],
            alternative_addresses=[],
        )
        self.db.add(customer)
        await self.db.flush()
        await sync_identity_index(self.db, customer)
        logger.info(f"Created customer {customer.id} in store {store_id}")
        return customer

    async def merge(self, existing: Customer, contact: ContactInfo) -> Customer:
        """Fold a contact's differing values into the customer's alternates."""
        changed = self._merge_fields(existing, contact)
        if changed:
            await sync_identity_index(self.db, existing)
            logger.info(f"Merged contact variants ({', '.join(changed)}) into customer {existing.id}")
        return existing

    async def apply_update(self, customer: Customer, updates: ContactInfo) -> Customer:
        """Explicit edit of primary fields (fields left as None are untouched)."""
        changed = []
        for field in CONTACT_FIELDS:
            value = getattr(updates, field)
            if value is not None and set_primary(customer, field, value):
                changed.append(field)
        if changed:
            await sync_identity_index(self.db, customer)
        return customer

    async def absorb(self, winner: Customer, loser: Customer, incoming: ContactInfo) -> Customer:
        """
        Fold ``loser`` into ``winner`` and delete ``loser``.

        The winner keeps its primary fields. Its alternates become the union of
        both records' alternates, the loser's primaries and the incoming update.
        Orders and returns of the loser are re-pointed to the winner.
        """
        if winner.store_id != loser.store_id:
            raise ValidationError("Customers of different stores cannot be merged.")

        for field in CONTACT_FIELDS:
            add_variant(winner, field, getattr(loser, field))
            for alternate in loser.alternates(field):
                add_variant(winner, field, alternate)
        self._merge_fields(winner, incoming)

        orders_moved = await self.db.execute(
            update(Order)
            .where(Order.customer_id == loser.id)
            .values(customer_id=winner.id)
            .execution_options(synchronize_session=False)
        )
        returns_moved = await self.db.execute(
            update(ReturnRequest)
            .where(ReturnRequest.customer_id == loser.id)
            .values(customer_id=winner.id)
            .execution_options(synchronize_session=False)
        )

        await drop_identity_index(self.db, loser.id)
        await self.db.delete(loser)
        await self.db.flush()
        await sync_identity_index(self.db, winner)

        logger.info(
            f"Merged customer {loser.id} into {winner.id}: "
            f"{orders_moved.rowcount} orders, {returns_moved.rowcount} returns re-pointed"
        )
        return winner

    @staticmethod
    def _merge_fields(customer: Customer, contact: ContactInfo) -> List[str]:
        return [
            field for field in CONTACT_FIELDS
            if add_variant(customer, field, getattr(contact, field))
        ]
