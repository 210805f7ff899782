"""Tests for the cached user location lookup."""

import json
import threading
import time

import pytest

from marketplace.exceptions import LocationUnavailableError
from marketplace.models.schemas import GeoPoint
from marketplace.services.location_service import (
    POSITION_WORKERS,
    LocationProvider,
    PositionOptions,
    ReportedLocationProvider,
    UserLocationCache,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingProvider(LocationProvider):
    def __init__(self, point: GeoPoint):
        self.point = point
        self.calls = 0

    def get_position(self, options):
        self.calls += 1
        return self.point


class FailingProvider(LocationProvider):
    def get_position(self, options):
        raise LocationUnavailableError("position unavailable")


class SlowProvider(LocationProvider):
    def get_position(self, options):
        time.sleep(0.5)
        return GeoPoint(latitude=0, longitude=0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def palermo():
    return GeoPoint(latitude=-34.5889, longitude=-58.4306)


def test_reading_is_cached_for_an_hour(storage, clock, palermo):
    provider = CountingProvider(palermo)
    cache = UserLocationCache(storage, provider, clock=clock)

    assert cache.get_location() == palermo
    clock.now += 3599
    assert cache.get_location() == palermo
    assert provider.calls == 1

    clock.now += 1
    assert cache.get_location() == palermo
    assert provider.calls == 2


def test_cache_entry_format(storage, clock, palermo):
    UserLocationCache(storage, CountingProvider(palermo), clock=clock).get_location()

    stored = json.loads(storage.get_item("user_location"))
    assert stored == {"latitude": -34.5889, "longitude": -58.4306, "timestamp": clock.now}


def test_stale_cache_without_provider_returns_none(storage, clock, palermo):
    cache = UserLocationCache(storage, clock=clock)
    cache.store(palermo)
    assert cache.get_location() == palermo

    clock.now += 3600
    assert cache.get_location() is None
    assert cache.error == "Geolocation not supported"


def test_permission_denied(storage, clock):
    cache = UserLocationCache(storage, ReportedLocationProvider(denied=True), clock=clock)
    assert cache.get_location() is None
    assert cache.error == "Location permission denied"
    assert storage.get_item("user_location") is None


def test_provider_error(storage, clock):
    cache = UserLocationCache(storage, FailingProvider(), clock=clock)
    assert cache.get_location() is None
    assert cache.error == "Could not get location"


def test_missing_coordinates(storage, clock):
    cache = UserLocationCache(storage, ReportedLocationProvider(), clock=clock)
    assert cache.get_location() is None
    assert cache.error == "Could not get location"


def test_timeout(storage, clock):
    cache = UserLocationCache(
        storage, SlowProvider(), options=PositionOptions(timeout=0.05), clock=clock
    )
    assert cache.get_location() is None
    assert cache.error == "Location request timed out"


def test_repeated_timeouts_share_a_bounded_pool(storage, clock):
    for _ in range(POSITION_WORKERS * 2):
        cache = UserLocationCache(
            storage, SlowProvider(), options=PositionOptions(timeout=0.01), clock=clock
        )
        assert cache.get_location() is None

    workers = [t for t in threading.enumerate() if t.name.startswith("geolocation")]
    assert len(workers) <= POSITION_WORKERS


def test_provider_override_per_call(storage, clock, palermo):
    cache = UserLocationCache(storage, ReportedLocationProvider(denied=True), clock=clock)
    provider = ReportedLocationProvider(palermo.latitude, palermo.longitude)
    assert cache.get_location(provider) == palermo
    assert cache.error is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"latitude": -34.5}',
        '{"latitude": "x", "longitude": 1, "timestamp": 1}',
        '{"latitude": 120, "longitude": 1, "timestamp": 1}',
        "[1, 2]",
    ],
)
def test_malformed_cache_is_removed(storage, clock, raw):
    storage.set_item("user_location", raw)
    cache = UserLocationCache(storage, clock=clock)

    assert cache.cached() is None
    assert storage.get_item("user_location") is None
