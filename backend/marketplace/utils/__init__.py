"""
Utility functions for the property marketplace.
"""

from .helpers import (
    generate_session_id,
    parse_numeric,
    is_blank,
    slugify,
    format_price,
    price_per_m2,
)

__all__ = [
    "generate_session_id",
    "parse_numeric",
    "is_blank",
    "slugify",
    "format_price",
    "price_per_m2",
]
