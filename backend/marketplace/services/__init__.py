"""
Services for the property marketplace.

- ListingStore: listings fetched once from the backend
- AdService / AdminService: back-office editing and role checks
- filter_service: listing filter predicates
- FavoriteSet / ComparisonSet: per-session bookmark and comparison sets
- geo_service / UserLocationCache: geo-targeted eligibility
- MessagingService: owner/interested user chat
- SessionService: client sessions and their local storage
"""

from .ad_service import AdService
from .admin_service import AdminService
from .backend_client import (
    BackendClient,
    InMemoryBackend,
    RestBackend,
    ObjectStorage,
    Subscription,
    create_backend,
)
from .context import AppContext, create_app_context
from .favorites_service import FavoriteSet, ComparisonSet
from .filter_service import matches, filter_listings, count_active_filters
from .geo_service import distance_km, is_eligible, eligible_ads
from .listing_store import ListingStore
from .local_storage import LocalStorage
from .location_service import UserLocationCache, ReportedLocationProvider, PositionOptions
from .messaging_service import MessagingService, MessageStream
from .session_service import SessionService, SessionData

__all__ = [
    "BackendClient",
    "InMemoryBackend",
    "RestBackend",
    "ObjectStorage",
    "Subscription",
    "create_backend",
    "AdService",
    "AdminService",
    "AppContext",
    "create_app_context",
    "FavoriteSet",
    "ComparisonSet",
    "matches",
    "filter_listings",
    "count_active_filters",
    "distance_km",
    "is_eligible",
    "eligible_ads",
    "ListingStore",
    "LocalStorage",
    "UserLocationCache",
    "ReportedLocationProvider",
    "PositionOptions",
    "MessagingService",
    "MessageStream",
    "SessionService",
    "SessionData",
]
