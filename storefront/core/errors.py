"""
Error taxonomy for the storefront core.

Services raise these; the API layer renders them through a single exception
handler (see storefront.main). Every error is raised either before any write
is issued or after the surrounding transaction has been rolled back.
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for all storefront domain errors."""

    status_code = 500

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.message = message
        self.extra = extra or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "type": type(self).__name__, **self.extra}


class ValidationError(StorefrontError):
    """Malformed or out-of-range input."""
    status_code = 400


class InvalidQuantityError(ValidationError):
    """Return quantity is non-positive or exceeds the remaining order quantity."""

    def __init__(self, message: str, remaining: Optional[int] = None):
        extra = {"remaining": remaining} if remaining is not None else None
        super().__init__(message, extra)
        self.remaining = remaining


class NotFoundError(StorefrontError):
    """Referenced order, customer, return or product does not exist."""
    status_code = 404


class ProductNotFoundError(NotFoundError):
    pass


class ConflictError(StorefrontError):
    """Contact collision between customer records that cannot be auto-merged."""
    status_code = 409


class InsufficientStockError(StorefrontError):
    """Not enough stock to reserve; carries the currently available quantity."""
    status_code = 409

    def __init__(self, product_id, requested: int, available: int):
        super().__init__(
            f"Insufficient stock. Only {available} units available.",
            {"available": available, "requested": requested, "product_id": str(product_id)},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InternalError(StorefrontError):
    """Storage transaction failure; the transaction has been rolled back."""
    status_code = 500
