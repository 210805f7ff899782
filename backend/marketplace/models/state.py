"""
Enumerations shared by the listing, comparison and storage services.
"""

from enum import Enum


class OperationType(str, Enum):
    """Enumeration of listing operations."""

    SALE = "venta"
    RENT = "alquiler"
    TEMPORARY_RENT = "alquiler-temporal"
    UNKNOWN = "unknown"


class ComparisonAddResult(str, Enum):
    """Outcome of adding a listing to the comparison set."""

    ADDED = "added"
    ALREADY_PRESENT = "already_present"
    LIMIT_REACHED = "limit_reached"


class StorageKey(str, Enum):
    """Keys used in the per-session key-value store."""

    FAVORITES = "favorites"
    COMPARISON = "property-comparison"
    COOKIE_CONSENT = "cookieConsent"
    USER_LOCATION = "user_location"
    USER = "user"


# Sentinel used by the operation and property type selectors
ALL = "all"


def get_operation_type(operation_string: str) -> OperationType:
    """
    Convert an operation string to OperationType enum.

    Args:
        operation_string: String representation of the operation

    Returns:
        Corresponding OperationType enum value
    """
    operation_map = {
        "venta": OperationType.SALE,
        "sale": OperationType.SALE,
        "buy": OperationType.SALE,
        "comprar": OperationType.SALE,
        "alquiler": OperationType.RENT,
        "rent": OperationType.RENT,
        "alquilar": OperationType.RENT,
        "alquiler-temporal": OperationType.TEMPORARY_RENT,
        "alquiler temporal": OperationType.TEMPORARY_RENT,
        "rent-temporary": OperationType.TEMPORARY_RENT,
    }

    normalized = (operation_string or "").lower().strip()
    return operation_map.get(normalized, OperationType.UNKNOWN)
