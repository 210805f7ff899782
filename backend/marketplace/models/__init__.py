"""
Data models for the property marketplace.
"""

from .schemas import (
    Property,
    InvestmentProject,
    ProfessionalService,
    Listing,
    FilterCriteria,
    GeoPoint,
    Advertisement,
    Conversation,
    Message,
)
from .state import OperationType, ComparisonAddResult, StorageKey

__all__ = [
    "Property",
    "InvestmentProject",
    "ProfessionalService",
    "Listing",
    "FilterCriteria",
    "GeoPoint",
    "Advertisement",
    "Conversation",
    "Message",
    "OperationType",
    "ComparisonAddResult",
    "StorageKey",
]
