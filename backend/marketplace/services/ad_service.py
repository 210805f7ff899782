"""
Advertisements: back-office management and geo-targeted selection.
"""

from typing import Any, List, Optional
import logging

from ..exceptions import ListingNotFoundError
from ..models.schemas import Advertisement, AdRequest, AdUpdateRequest, GeoPoint
from .backend_client import BackendClient
from .geo_service import DEFAULT_RADIUS_KM, eligible_ads
from .listing_store import parse_rows

logger = logging.getLogger(__name__)

TABLE = "advertisements"


class AdService:
    """Reads and edits the ``advertisements`` table."""

    def __init__(self, backend: BackendClient, default_radius_km: float = DEFAULT_RADIUS_KM):
        self._backend = backend
        self.default_radius_km = default_radius_km

    def all_ads(self) -> List[Advertisement]:
        """Every ad, active or not. Malformed rows are skipped."""
        return parse_rows(self._backend.select(TABLE, order_by="id"), Advertisement, TABLE)

    def eligible(
        self,
        user_location: Optional[GeoPoint],
        placement: Optional[str] = None,
    ) -> List[Advertisement]:
        """Running ads for ``placement`` that target the user's location."""
        return eligible_ads(
            self.all_ads(),
            user_location,
            placement=placement,
            default_radius_km=self.default_radius_km,
        )

    def create(self, request: AdRequest) -> Advertisement:
        record = request.model_dump(mode="json", exclude_none=True)
        record.update(clicks=0, impressions=0)
        ad = Advertisement.model_validate(self._backend.insert(TABLE, record))
        logger.info(f"Created ad {ad.id} ({ad.placement})")
        return ad

    def update(self, ad_id: Any, request: AdUpdateRequest) -> Advertisement:
        """
        Apply the fields set on ``request``.

        Raises:
            ListingNotFoundError: if no ad has this id
        """
        changes = request.model_dump(mode="json", exclude_unset=True)
        if not changes:
            return self.get(ad_id)
        stored = self._backend.update(TABLE, ad_id, changes)
        if stored is None:
            raise ListingNotFoundError("Advertisement", ad_id)
        return Advertisement.model_validate(stored)

    def toggle(self, ad_id: Any) -> Advertisement:
        """Flip ``is_active``."""
        ad = self.get(ad_id)
        stored = self._backend.update(TABLE, ad.id, {"is_active": not ad.is_active})
        ad = Advertisement.model_validate(stored)
        logger.info(f"Ad {ad.id} {'activated' if ad.is_active else 'paused'}")
        return ad

    def delete(self, ad_id: Any) -> bool:
        deleted = self._backend.delete(TABLE, ad_id)
        if deleted:
            logger.info(f"Deleted ad {ad_id}")
        return deleted

    def get(self, ad_id: Any) -> Advertisement:
        record = self._backend.get(TABLE, ad_id)
        if record is None:
            raise ListingNotFoundError("Advertisement", ad_id)
        return Advertisement.model_validate(record)
