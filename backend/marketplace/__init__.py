"""
Property marketplace backend.

Listings, search filters, favorites, comparison, geo-targeted ads and
messaging on top of a hosted backend-as-a-service.
"""

__version__ = "1.0.0"
