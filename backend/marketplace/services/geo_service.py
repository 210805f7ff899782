"""
Great-circle distance and geo eligibility of targeted items.
"""

from typing import Iterable, List, Optional
from datetime import date
import math

from ..models.schemas import Advertisement, GeoPoint

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 50.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two points given in decimal degrees.

    Returns:
        Distance in kilometers
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def is_eligible(
    item,
    user_location: Optional[GeoPoint],
    default_radius_km: float = DEFAULT_RADIUS_KM,
) -> bool:
    """
    Whether a geo-tagged item should be shown to a user.

    Items without coordinates are shown to everyone. Tagged items are shown
    when no user location is known, otherwise only within their radius.

    Args:
        item: Object with ``latitude``, ``longitude`` and optional ``radius_km``
        user_location: Where the user is, None if unknown
        default_radius_km: Radius used when the item sets none

    Returns:
        True when the item is eligible
    """
    latitude = getattr(item, "latitude", None)
    longitude = getattr(item, "longitude", None)
    if latitude is None or longitude is None:
        return True
    if user_location is None:
        return True

    radius = getattr(item, "radius_km", None)
    if radius is None:
        radius = default_radius_km

    distance = distance_km(user_location.latitude, user_location.longitude, latitude, longitude)
    return distance <= radius


def is_running(ad: Advertisement, today: Optional[date] = None) -> bool:
    """Active flag set and ``today`` inside the optional start/end window."""
    today = today or date.today()
    if not ad.is_active:
        return False
    if ad.start_date and today < ad.start_date:
        return False
    if ad.end_date and today > ad.end_date:
        return False
    return True


def eligible_ads(
    ads: Iterable[Advertisement],
    user_location: Optional[GeoPoint],
    placement: Optional[str] = None,
    today: Optional[date] = None,
    default_radius_km: float = DEFAULT_RADIUS_KM,
) -> List[Advertisement]:
    """
    Ads to display for a user, in input order.

    Args:
        ads: Candidate ads
        user_location: User position, None if unavailable
        placement: Keep only ads for this slot when given
        today: Reference date for the active window
        default_radius_km: Radius for ads without one

    Returns:
        Eligible ads
    """
    return [
        ad for ad in ads
        if (placement is None or ad.placement == placement)
        and is_running(ad, today)
        and is_eligible(ad, user_location, default_radius_km)
    ]
