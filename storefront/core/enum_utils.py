"""
Enum Utilities for VARCHAR-based Status Fields

Statuses are stored as uppercase VARCHAR values, validated at the API
boundary with Python enums:

    Database:  String(50), e.g. "PENDING"
    Pydantic:  OrderStatus / ReturnStatus enums, input accepted in any case
    Services:  compare through get_enum_value() so enum or str both work
"""

from enum import Enum
from typing import Any, Optional


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(OrderStatus.PENDING)
        'PENDING'
        >>> get_enum_value("PENDING")
        'PENDING'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def normalize_to_uppercase(value: Any) -> Any:
    """Uppercase string input so "pending" and "Pending" validate as PENDING."""
    if isinstance(value, str):
        return value.strip().upper()
    return value
