"""
Location provider tests.

Permission memory, timeouts, manual fallback and best-effort geocoding.
"""

import asyncio

import pytest
from weighcheck.app.core.exceptions import (
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
    ValidationError,
)
from weighcheck.app.services.geocoding import GeocodeResult
from weighcheck.app.services.location import (
    InMemoryPermissionPreference,
    LocationProvider,
    LocationState,
    PositionFix,
    RedisPermissionPreference,
    ReportedPositionSource,
)


class CountingSource:
    def __init__(self, fix=None, error=None, delay=0):
        self.fix = fix
        self.error = error
        self.delay = delay
        self.calls = []

    async def get_position(self, high_accuracy, timeout, max_age):
        self.calls.append((high_accuracy, timeout, max_age))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.fix


class StubGeocoder:
    def __init__(self, error=None):
        self.error = error

    async def reverse(self, latitude, longitude, client_id=None):
        if self.error:
            raise self.error
        return GeocodeResult(address="Jalan Sudirman 1", city="Jakarta Pusat", country="Indonesia")


FIX = PositionFix(-6.2088, 106.8456, 8.0)


@pytest.mark.asyncio
async def test_successful_fix_with_address():
    source = CountingSource(fix=FIX)
    provider = LocationProvider(source, InMemoryPermissionPreference(), StubGeocoder(), timeout=5)

    state = await provider.start()

    assert state == LocationState.SUCCESS
    assert provider.sample.latitude == -6.2088
    assert provider.sample.address == "Jalan Sudirman 1"
    assert provider.sample.city == "Jakarta Pusat"
    assert provider.sample.is_manual is False
    # Fresh high-accuracy fix, never a cached one
    assert source.calls == [(True, 5, 0)]


@pytest.mark.asyncio
async def test_denied_permission_is_remembered():
    preference = InMemoryPermissionPreference()
    first = LocationProvider(CountingSource(error=LocationPermissionDenied()), preference)

    assert await first.start() == LocationState.ERROR
    assert isinstance(first.error, LocationPermissionDenied)
    assert preference.denied is True

    source = CountingSource(fix=FIX)
    second = LocationProvider(source, preference)

    assert await second.start() == LocationState.MANUAL
    assert source.calls == []


@pytest.mark.asyncio
async def test_successful_retry_clears_denied_flag():
    preference = InMemoryPermissionPreference(denied=True)
    provider = LocationProvider(CountingSource(fix=FIX), preference)

    assert await provider.start() == LocationState.MANUAL

    await provider.retry_gps()

    assert provider.state == LocationState.SUCCESS
    assert preference.denied is False


@pytest.mark.asyncio
async def test_slow_source_times_out():
    provider = LocationProvider(CountingSource(fix=FIX, delay=1), InMemoryPermissionPreference(), timeout=0.05)

    with pytest.raises(LocationTimeout):
        await provider.acquire()

    assert provider.state == LocationState.ERROR


@pytest.mark.asyncio
async def test_unavailable_does_not_set_denied_flag():
    preference = InMemoryPermissionPreference()
    provider = LocationProvider(CountingSource(error=LocationUnavailable()), preference)

    with pytest.raises(LocationUnavailable):
        await provider.acquire()

    assert preference.denied is False


@pytest.mark.asyncio
async def test_geocoder_failure_keeps_coordinates():
    provider = LocationProvider(
        CountingSource(fix=FIX), InMemoryPermissionPreference(), StubGeocoder(error=RuntimeError("down"))
    )

    sample = await provider.acquire()

    assert sample.latitude == -6.2088
    assert sample.address is None
    assert provider.state == LocationState.SUCCESS


def test_manual_entry():
    provider = LocationProvider(CountingSource(fix=FIX), InMemoryPermissionPreference())

    assert provider.open_manual() == LocationState.MANUAL
    sample = provider.use_manual("  Gudang Cakung blok C ")

    assert provider.state == LocationState.SUCCESS
    assert sample.is_manual is True
    assert (sample.latitude, sample.longitude) == (0.0, 0.0)
    assert sample.accuracy is None
    assert sample.address == "Gudang Cakung blok C"


def test_manual_entry_requires_address():
    provider = LocationProvider(CountingSource(fix=FIX), InMemoryPermissionPreference())

    with pytest.raises(ValidationError):
        provider.use_manual("   ")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error_code,expected",
    [(1, LocationPermissionDenied), (2, LocationUnavailable), (3, LocationTimeout)],
)
async def test_reported_error_codes(error_code, expected):
    with pytest.raises(expected):
        await ReportedPositionSource(error_code=error_code).get_position()


@pytest.mark.asyncio
async def test_reported_source_without_coordinates():
    with pytest.raises(LocationUnavailable):
        await ReportedPositionSource(latitude=1.0).get_position()


@pytest.mark.asyncio
async def test_redis_preference_is_per_worker(mock_redis):
    budi = RedisPermissionPreference(mock_redis, 1)
    siti = RedisPermissionPreference(mock_redis, 2)

    await budi.set_denied()

    assert await budi.is_denied() is True
    assert await siti.is_denied() is False

    await budi.clear()
    assert await budi.is_denied() is False
