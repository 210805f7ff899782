"""
Filter predicate evaluation over in-memory listings.

``matches(listing, criteria)`` is a pure function: no I/O, never raises on
bad data. Unparsable numbers count as 0.

Known gaps:

- prices are compared on their digits only, so "USD 250.000" and
  "ARS 180.000/mes" land on the same scale
- amenities are collected in the criteria but never applied
"""

from typing import Iterable, List, Optional
import logging

from ..models.schemas import FilterCriteria, Property
from ..models.state import ALL
from ..utils.helpers import parse_numeric, is_blank

logger = logging.getLogger(__name__)


def _parse_bound(value: Optional[str]) -> Optional[float]:
    """
    Parse a min/max bound typed by the user.

    Returns None for an empty bound (no constraint). Plain numbers are read
    as-is; anything else keeps its digits, falling back to 0.
    """
    if is_blank(value):
        return None
    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        return parse_numeric(text)


def _is_unconstrained(value: Optional[str]) -> bool:
    return is_blank(value) or value.strip().lower() == ALL


def _within(value: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _matches_rooms(bedrooms, rooms: str) -> bool:
    rooms = rooms.strip()
    count = parse_numeric(bedrooms)
    if rooms.endswith("+"):
        return count >= parse_numeric(rooms[:-1])
    return count == parse_numeric(rooms)


def matches(listing: Property, criteria: FilterCriteria) -> bool:
    """
    Decide whether a listing satisfies every constraint in ``criteria``.

    Args:
        listing: Property to test
        criteria: User-selected constraints

    Returns:
        True when the listing should be shown
    """
    if not _is_unconstrained(criteria.operation):
        if (listing.operation or "").lower() != criteria.operation.strip().lower():
            return False

    if not _is_unconstrained(criteria.property_type):
        if (listing.type or "").lower() != criteria.property_type.strip().lower():
            return False

    if not is_blank(criteria.location):
        if criteria.location.strip().lower() not in (listing.location or "").lower():
            return False

    price_min = _parse_bound(criteria.price_min)
    price_max = _parse_bound(criteria.price_max)
    if price_min is not None or price_max is not None:
        if not _within(parse_numeric(listing.price), price_min, price_max):
            return False

    if not is_blank(criteria.rooms):
        if not _matches_rooms(listing.bedrooms, criteria.rooms):
            return False

    area_min = _parse_bound(criteria.area_min)
    area_max = _parse_bound(criteria.area_max)
    if area_min is not None or area_max is not None:
        if not _within(parse_numeric(listing.area), area_min, area_max):
            return False

    return True


def filter_listings(listings: Iterable[Property], criteria: Optional[FilterCriteria]) -> List[Property]:
    """
    Keep the listings matching ``criteria``, preserving input order.

    Args:
        listings: Candidate properties
        criteria: Constraints, None meaning no constraint

    Returns:
        Matching properties
    """
    listings = list(listings)
    if criteria is None:
        return listings
    result = [listing for listing in listings if matches(listing, criteria)]
    logger.debug(f"Filtered {len(listings)} listings down to {len(result)}")
    return result


def count_active_filters(criteria: FilterCriteria) -> int:
    """
    Number of constraints the user has set, as shown on the filter badge.

    Min/max pairs count once; amenities count when any is selected.
    """
    active = 0
    if not _is_unconstrained(criteria.operation):
        active += 1
    if not _is_unconstrained(criteria.property_type):
        active += 1
    if not is_blank(criteria.location):
        active += 1
    if not (is_blank(criteria.price_min) and is_blank(criteria.price_max)):
        active += 1
    if not is_blank(criteria.rooms):
        active += 1
    if not (is_blank(criteria.area_min) and is_blank(criteria.area_max)):
        active += 1
    if criteria.amenities:
        active += 1
    return active
