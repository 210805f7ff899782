"""
User location lookup with a one-hour cache in session storage.

A ``LocationProvider`` stands in for the platform's location service. Any
failure (no provider, permission denied, provider error, timeout) resolves to
"no location" and never raises to the caller.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, Optional
import json
import logging
import time

from ..exceptions import LocationUnavailableError
from ..models.schemas import GeoPoint
from ..models.state import StorageKey
from .local_storage import LocalStorage

logger = logging.getLogger(__name__)

POSITION_WORKERS = 4

# Shared by every cache, so providers that hang past their timeout hold at
# most POSITION_WORKERS threads.
_POSITION_POOL = ThreadPoolExecutor(max_workers=POSITION_WORKERS, thread_name_prefix="geolocation")


@dataclass
class PositionOptions:
    """Options passed to the location provider."""

    high_accuracy: bool = False
    timeout: float = 10.0
    maximum_age: float = 300.0


class PermissionDeniedError(LocationUnavailableError):
    """The user refused to share their location."""


class LocationProvider(ABC):
    """Single-shot position source."""

    @abstractmethod
    def get_position(self, options: PositionOptions) -> GeoPoint:
        """
        Return the current position.

        Raises:
            LocationUnavailableError: when no position can be produced
        """


class ReportedLocationProvider(LocationProvider):
    """Position reported by the client device along with a request."""

    def __init__(self, latitude: Optional[float] = None, longitude: Optional[float] = None,
                 denied: bool = False):
        self.latitude = latitude
        self.longitude = longitude
        self.denied = denied

    def get_position(self, options: PositionOptions) -> GeoPoint:
        if self.denied:
            raise PermissionDeniedError("User denied geolocation")
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailableError("No coordinates reported")
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


class UserLocationCache:
    """
    Resolves the user's coordinates, reusing a cached reading for an hour.

    The cache entry is ``{"latitude", "longitude", "timestamp"}`` under the
    ``user_location`` storage key, timestamp in epoch seconds.
    """

    def __init__(
        self,
        storage: LocalStorage,
        provider: Optional[LocationProvider] = None,
        ttl_seconds: float = 3600,
        options: Optional[PositionOptions] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage
        self.provider = provider
        self.ttl_seconds = ttl_seconds
        self.options = options or PositionOptions()
        self._clock = clock
        self.error: Optional[str] = None

    def cached(self) -> Optional[GeoPoint]:
        """Return the cached location if present and fresh."""
        raw = self._storage.get_item(StorageKey.USER_LOCATION.value)
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
            timestamp = float(parsed.get("timestamp") or 0)
            point = GeoPoint(latitude=parsed["latitude"], longitude=parsed["longitude"])
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Removing malformed cached location: {e}")
            self._storage.remove_item(StorageKey.USER_LOCATION.value)
            return None

        if self._clock() - timestamp < self.ttl_seconds:
            return point
        return None

    def store(self, point: GeoPoint):
        """Cache a reading with the current time."""
        self._storage.set_item(StorageKey.USER_LOCATION.value, json.dumps({
            "latitude": point.latitude,
            "longitude": point.longitude,
            "timestamp": self._clock(),
        }))

    def get_location(self, provider: Optional[LocationProvider] = None) -> Optional[GeoPoint]:
        """
        Return the user's location, or None if it cannot be obtained.

        Args:
            provider: Overrides the configured provider for this call

        Returns:
            GeoPoint or None
        """
        self.error = None
        point = self.cached()
        if point is not None:
            return point

        provider = provider or self.provider
        if provider is None:
            self.error = "Geolocation not supported"
            return None

        try:
            point = self._request_position(provider)
        except FutureTimeoutError:
            logger.warning(f"Geolocation timed out after {self.options.timeout}s")
            self.error = "Location request timed out"
            return None
        except PermissionDeniedError as e:
            logger.info(f"Geolocation denied: {e}")
            self.error = "Location permission denied"
            return None
        except Exception as e:
            logger.error(f"Geolocation error: {e}")
            self.error = "Could not get location"
            return None

        self.store(point)
        return point

    def _request_position(self, provider: LocationProvider) -> GeoPoint:
        future = _POSITION_POOL.submit(provider.get_position, self.options)
        try:
            return future.result(timeout=self.options.timeout)
        except FutureTimeoutError:
            # a queued request never starts; a running one keeps its worker until it returns
            future.cancel()
            raise
