"""
Application context: the service objects shared by request handlers.

Built once at startup and injected into endpoints, so the filter, favorites
and geo logic never reach for globals.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from ..config import Settings, get_settings
from .ad_service import AdService
from .admin_service import AdminService
from .backend_client import BackendClient, ObjectStorage, create_backend
from .listing_store import ListingStore
from .location_service import PositionOptions
from .messaging_service import MessagingService
from .session_service import SessionService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Container for the application's services."""

    settings: Settings
    backend: BackendClient
    object_storage: ObjectStorage
    listings: ListingStore
    sessions: SessionService
    messaging: MessagingService
    admin: AdminService
    ads: AdService


def create_app_context(
    settings: Optional[Settings] = None,
    backend: Optional[BackendClient] = None,
) -> AppContext:
    """
    Wire the services together.

    Args:
        settings: Settings to use, defaults to the cached environment settings
        backend: Backend to use, defaults to the one configured in settings

    Returns:
        AppContext
    """
    settings = settings or get_settings()
    backend = backend or create_backend(settings)

    sessions = SessionService(
        session_timeout_hours=settings.SESSION_TIMEOUT_HOURS,
        storage_dir=settings.LOCAL_STORAGE_DIR,
        comparison_max_items=settings.COMPARISON_MAX_ITEMS,
        location_ttl_seconds=settings.LOCATION_CACHE_SECONDS,
        location_options=PositionOptions(
            high_accuracy=False,
            timeout=settings.LOCATION_TIMEOUT_SECONDS,
            maximum_age=settings.LOCATION_MAX_AGE_SECONDS,
        ),
    )

    return AppContext(
        settings=settings,
        backend=backend,
        object_storage=ObjectStorage(settings.STORAGE_PUBLIC_URL),
        listings=ListingStore(backend),
        sessions=sessions,
        messaging=MessagingService(backend),
        admin=AdminService(backend),
        ads=AdService(backend, default_radius_km=settings.DEFAULT_AD_RADIUS_KM),
    )
