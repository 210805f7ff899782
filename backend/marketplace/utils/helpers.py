"""
Helper utility functions.
"""

import uuid
import re
from typing import Any, Optional


def generate_session_id() -> str:
    """
    Generate a unique session ID.

    Returns:
        Unique session identifier string
    """
    return str(uuid.uuid4())


def parse_numeric(value: Any) -> float:
    """
    Coerce a listing or form value into a number.

    Strings keep their digits only, so "USD 250.000" becomes 250000 and
    "ARS 180.000/mes" becomes 180000. The currency and the payment period
    are dropped. Anything unparsable yields 0.

    Args:
        value: String, number or None

    Returns:
        Numeric value, 0 when unparsable
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value

    digits = re.sub(r"[^0-9]", "", str(value))
    if not digits:
        return 0
    return int(digits)


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or (isinstance(value, str) and not value.strip())


def slugify(text: str) -> str:
    """
    Build a URL slug from a listing title.

    Lowercases the text, collapses every run of characters outside
    ``[a-z0-9]`` into a single dash and strips leading/trailing dashes.
    Accented letters are not transliterated.

    Args:
        text: Title to convert

    Returns:
        Slug string
    """
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower())
    return slug.strip("-")


def format_price(price: Optional[float], currency: str = "USD") -> str:
    """
    Format a price value for display using dots as thousands separators.

    Args:
        price: Price value (can be None)
        currency: Currency prefix

    Returns:
        Formatted price string
    """
    if price is None:
        return "N/A"

    return f"{currency} {price:,.0f}".replace(",", ".")


def price_per_m2(price: Any, area: Any) -> int:
    """
    Price per square meter of a listing, rounded down.

    Args:
        price: Price string or number
        area: Covered area in m2

    Returns:
        Whole price per m2, 0 when the area is missing
    """
    area_value = parse_numeric(area) if isinstance(area, str) else (area or 0)
    if area_value <= 0:
        return 0
    return int(parse_numeric(price) // area_value)
