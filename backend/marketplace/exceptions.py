"""
Domain errors raised by the marketplace services.
"""


class MarketplaceError(Exception):
    """Base class for marketplace errors."""


class BackendError(MarketplaceError):
    """A call to the backend-as-a-service failed."""

    def __init__(self, message: str, table: str = ""):
        super().__init__(message)
        self.table = table


class ListingNotFoundError(MarketplaceError):
    """No listing matches the requested slug or id."""

    def __init__(self, kind: str, key):
        super().__init__(f"{kind} '{key}' not found")
        self.kind = kind
        self.key = key


class LocationUnavailableError(MarketplaceError):
    """The location provider could not produce a position."""
