import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from storefront.core.normalization import (
    normalize_address, normalize_email, normalize_name, normalize_phone,
)
from storefront.database import Base
from storefront.db_types import JSONType, UUIDType


class IdentityChannel(str, Enum):
    """Contact channels used for identity matching, in priority order."""
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    ADDRESS = "ADDRESS"


# field -> (alternates attribute, normalizer)
CONTACT_FIELDS: Dict[str, Tuple[str, Callable[[Optional[str]], str]]] = {
    "name": ("alternative_names", normalize_name),
    "email": ("alternative_emails", normalize_email),
    "phone": ("alternative_phones", normalize_phone),
    "address": ("alternative_addresses", normalize_address),
}

# Matching priority: email outranks phone, phone outranks address
IDENTITY_PRIORITY: List[Tuple[IdentityChannel, str]] = [
    (IdentityChannel.EMAIL, "email"),
    (IdentityChannel.PHONE, "phone"),
    (IdentityChannel.ADDRESS, "address"),
]


class Customer(Base):
    """
    Canonical customer of a store.

    Primary contact fields hold the current value of each channel; the
    alternative_* lists hold historical values as ordered sets (insertion
    order kept, no two entries equal after normalization).
    """
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    alternative_names: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    alternative_emails: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    alternative_phones: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    alternative_addresses: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def alternates(self, field: str) -> List[str]:
        attr, _ = CONTACT_FIELDS[field]
        return list(getattr(self, attr) or [])

    def identity_keys(self) -> List[Tuple[IdentityChannel, str, bool]]:
        """Normalized (channel, value, is_primary) keys of every matchable contact."""
        keys = []
        for channel, field in IDENTITY_PRIORITY:
            _, normalize = CONTACT_FIELDS[field]
            seen = set()
            primary = normalize(getattr(self, field))
            if primary:
                seen.add(primary)
                keys.append((channel, primary, True))
            for alternate in self.alternates(field):
                value = normalize(alternate)
                if value and value not in seen:
                    seen.add(value)
                    keys.append((channel, value, False))
        return keys

    def __repr__(self) -> str:
        return f"<Customer(name='{self.name}', email='{self.email}')>"


class CustomerIdentity(Base):
    """
    Lookup index of normalized contact values, one row per channel value.

    Rebuilt from the owning Customer in the same transaction as every
    customer mutation; the Customer row stays the source of truth.
    """
    __tablename__ = "customer_identities"
    __table_args__ = (
        Index("ix_customer_identities_lookup", "store_id", "channel", "value"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    channel: Mapped[str] = mapped_column(String(20), nullable=False, comment="EMAIL, PHONE, ADDRESS")
    value: Mapped[str] = mapped_column(String(500), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
