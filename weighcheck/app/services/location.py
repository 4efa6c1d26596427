"""
Location acquisition for evidence capture.

The provider asks a position source for a fresh high-accuracy fix,
enriches it with a best-effort reverse geocode and remembers a denied
permission, so the next session opens manual entry straight away.

State machine:

    loading -> success | error
    error   -> loading (retry_gps) | manual (open_manual)
    manual  -> success (use_manual or retry_gps)
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from weighcheck.app.core.config import settings
from weighcheck.app.core.exceptions import (
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
    ValidationError,
)

logger = logging.getLogger("weighcheck.location")


class LocationState(str, enum.Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    MANUAL = "manual"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LocationSample:
    """
    Where a photo was taken.

    Manual samples carry lat=lon=0 and the address typed by the worker.
    """
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    captured_at: datetime = field(default_factory=_utcnow)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_manual: bool = False

    @classmethod
    def manual(cls, address: str, captured_at: Optional[datetime] = None) -> "LocationSample":
        return cls(
            latitude=0.0,
            longitude=0.0,
            accuracy=None,
            captured_at=captured_at or _utcnow(),
            address=address.strip(),
            is_manual=True,
        )


@dataclass(frozen=True)
class PositionFix:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class PositionSource(Protocol):
    async def get_position(self, high_accuracy: bool, timeout: float, max_age: float) -> PositionFix:
        ...


class PermissionPreference(Protocol):
    async def is_denied(self) -> bool:
        ...

    async def set_denied(self) -> None:
        ...

    async def clear(self) -> None:
        ...


class AddressResolver(Protocol):
    async def reverse(self, latitude: float, longitude: float, client_id: Optional[str] = None):
        ...


# Browser geolocation error codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3


class ReportedPositionSource:
    """
    Position source fed by what the device reported.

    The device runs the actual geolocation request and posts either the
    coordinates or the browser error code.
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        accuracy: Optional[float] = None,
        error_code: Optional[int] = None,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy
        self.error_code = error_code

    async def get_position(self, high_accuracy: bool = True, timeout: float = 15, max_age: float = 0) -> PositionFix:
        if self.error_code == PERMISSION_DENIED:
            raise LocationPermissionDenied()
        if self.error_code == TIMEOUT:
            raise LocationTimeout()
        if self.error_code is not None or self.latitude is None or self.longitude is None:
            raise LocationUnavailable()
        return PositionFix(self.latitude, self.longitude, self.accuracy)


class RedisPermissionPreference:
    """Per-worker denied flag shared across sessions and processes."""

    KEY = "location:denied:{worker_id}"

    def __init__(self, redis, worker_id: int):
        self.redis = redis
        self.key = self.KEY.format(worker_id=worker_id)

    async def is_denied(self) -> bool:
        return bool(await self.redis.exists(self.key))

    async def set_denied(self) -> None:
        await self.redis.set(self.key, "1")

    async def clear(self) -> None:
        await self.redis.delete(self.key)


class InMemoryPermissionPreference:
    def __init__(self, denied: bool = False):
        self.denied = denied

    async def is_denied(self) -> bool:
        return self.denied

    async def set_denied(self) -> None:
        self.denied = True

    async def clear(self) -> None:
        self.denied = False


class LocationProvider:
    def __init__(
        self,
        source: PositionSource,
        preference: PermissionPreference,
        geocoder: Optional[AddressResolver] = None,
        timeout: Optional[float] = None,
        client_id: Optional[str] = None,
    ):
        self.source = source
        self.preference = preference
        self.geocoder = geocoder
        self.timeout = timeout or settings.location_timeout_seconds
        self.client_id = client_id

        self.state = LocationState.LOADING
        self.sample: Optional[LocationSample] = None
        self.error: Optional[LocationError] = None

    async def start(self) -> LocationState:
        """
        Begin a session.

        Skips the GPS request entirely when the worker denied permission
        before; acquisition errors leave the provider in ``error`` with
        manual entry offered.
        """
        if await self.preference.is_denied():
            self.state = LocationState.MANUAL
            return self.state

        try:
            await self.acquire()
        except LocationError:
            pass
        return self.state

    async def acquire(self) -> LocationSample:
        """
        Request one fresh high-accuracy fix.

        Raises:
            LocationPermissionDenied, LocationUnavailable, LocationTimeout
        """
        self.state = LocationState.LOADING
        self.error = None

        try:
            fix = await asyncio.wait_for(
                self.source.get_position(high_accuracy=True, timeout=self.timeout, max_age=0),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            self._fail(LocationTimeout())
            raise self.error
        except LocationPermissionDenied as e:
            await self.preference.set_denied()
            self._fail(e)
            raise
        except LocationError as e:
            self._fail(e)
            raise

        await self.preference.clear()

        address = city = country = None
        if self.geocoder is not None:
            try:
                result = await self.geocoder.reverse(fix.latitude, fix.longitude, client_id=self.client_id)
                address, city, country = result.address, result.city, result.country
            except Exception as e:
                logger.info(
                    "Reverse geocoding skipped",
                    extra={"latitude": fix.latitude, "longitude": fix.longitude, "error": str(e)},
                )

        self.sample = LocationSample(
            latitude=fix.latitude,
            longitude=fix.longitude,
            accuracy=fix.accuracy,
            address=address,
            city=city,
            country=country,
        )
        self.state = LocationState.SUCCESS
        return self.sample

    async def retry_gps(self) -> LocationSample:
        return await self.acquire()

    def open_manual(self) -> LocationState:
        self.state = LocationState.MANUAL
        return self.state

    def use_manual(self, address: str) -> LocationSample:
        if not address or not address.strip():
            raise ValidationError("Manual address must not be empty", details={"field": "address"})
        self.sample = LocationSample.manual(address)
        self.error = None
        self.state = LocationState.SUCCESS
        return self.sample

    def _fail(self, error: LocationError) -> None:
        self.error = error
        self.state = LocationState.ERROR
        logger.info("Location acquisition failed", extra={"error_code": error.error_code})
