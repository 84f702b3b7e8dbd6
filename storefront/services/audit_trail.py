"""Helpers for the order timeline and return history JSON logs."""
import uuid
from datetime import datetime, timezone
from typing import Optional

from storefront.config import settings
from storefront.core.enum_utils import get_enum_value
from storefront.models.order import Order
from storefront.models.return_order import ReturnRequest


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def append_timeline(order: Order, description: str, actor: Optional[str] = None) -> dict:
    """Append an entry to the order timeline (oldest first)."""
    entry = {
        "id": str(uuid.uuid4()),
        "description": description,
        "timestamp": _now_iso(),
        "actor": actor or settings.DEFAULT_ACTOR,
    }
    # Reassign so the JSON column is flagged dirty
    order.timeline = list(order.timeline or []) + [entry]
    return entry


def prepend_history(
    return_request: ReturnRequest,
    status,
    actor: Optional[str] = None,
    note: Optional[str] = None,
) -> dict:
    """Prepend an entry to the return history (newest first)."""
    entry = {
        "id": str(uuid.uuid4()),
        "timestamp": _now_iso(),
        "status": get_enum_value(status),
        "actor": actor or settings.DEFAULT_ACTOR,
        "note": note or "",
    }
    return_request.history = [entry] + list(return_request.history or [])
    return entry
