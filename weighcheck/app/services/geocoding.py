"""
Reverse geocoding over a Nominatim-compatible API.

Results are cached in Redis by rounded coordinates and each client is
limited to one lookup per rate window. Upstream failures never reach the
caller: they yield the "Unknown Location" fallback.
"""

import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

import httpx

from weighcheck.app.core.config import settings
from weighcheck.app.core.exceptions import GeocodeRateLimited, ValidationError
from weighcheck.app.core.reliability import CircuitBreaker, geocode_circuit_breaker

logger = logging.getLogger("weighcheck.geocoding")

UNKNOWN_LOCATION = "Unknown Location"


@dataclass(frozen=True)
class GeocodeResult:
    address: str
    city: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    cached: bool = False
    fallback: bool = False


FALLBACK_RESULT = GeocodeResult(address=UNKNOWN_LOCATION, fallback=True)


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationError(
            "Coordinates out of valid range",
            details={"latitude": latitude, "longitude": longitude},
        )


def parse_nominatim(payload: Dict[str, Any]) -> GeocodeResult:
    address = payload.get("address") or {}
    return GeocodeResult(
        address=payload.get("display_name") or UNKNOWN_LOCATION,
        city=(
            address.get("city")
            or address.get("town")
            or address.get("village")
            or address.get("municipality")
        ),
        country=address.get("country"),
        state=address.get("state"),
        postcode=address.get("postcode"),
    )


class ReverseGeocoder:
    """
    Coordinates to address lookups.

    Usage:
        geocoder = ReverseGeocoder(redis)
        result = await geocoder.reverse(-6.2, 106.8, client_id="10.0.0.1")
    """

    CACHE_KEY = "geocode:{lat:.4f},{lon:.4f}"
    RATE_KEY = "geocode:rate:{client_id}"

    def __init__(
        self,
        redis,
        http_client: Optional[httpx.AsyncClient] = None,
        breaker: Optional[CircuitBreaker] = None,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        cache_ttl_seconds: Optional[int] = None,
        rate_window_ms: Optional[int] = None,
    ):
        self.redis = redis
        self.http_client = http_client
        self.breaker = breaker or geocode_circuit_breaker
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.cache_ttl_seconds = cache_ttl_seconds or settings.geocoder_cache_ttl_seconds
        self.rate_window_ms = rate_window_ms or settings.geocoder_rate_window_ms

    async def _check_rate_limit(self, client_id: str) -> None:
        allowed = await self.redis.set(
            self.RATE_KEY.format(client_id=client_id), "1", nx=True, px=self.rate_window_ms
        )
        if not allowed:
            raise GeocodeRateLimited()

    async def _fetch(self, latitude: float, longitude: float) -> Dict[str, Any]:
        params = {
            "format": "json",
            "lat": latitude,
            "lon": longitude,
            "zoom": 18,
            "addressdetails": 1,
        }
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        if self.http_client is not None:
            response = await self.http_client.get(f"{self.base_url}/reverse", params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.geocoder_timeout_seconds) as client:
                response = await client.get(f"{self.base_url}/reverse", params=params, headers=headers)

        response.raise_for_status()
        return response.json()

    async def reverse(self, latitude: float, longitude: float, client_id: Optional[str] = None) -> GeocodeResult:
        """
        Resolve coordinates to an address.

        Raises:
            ValidationError: coordinates out of range
            GeocodeRateLimited: ``client_id`` already looked up within the rate window
        """
        validate_coordinates(latitude, longitude)

        if client_id:
            await self._check_rate_limit(client_id)

        cache_key = self.CACHE_KEY.format(lat=latitude, lon=longitude)
        cached = await self.redis.get(cache_key)
        if cached:
            return replace(GeocodeResult(**json.loads(cached)), cached=True)

        try:
            payload = await self.breaker.call(self._fetch, latitude, longitude)
            result = parse_nominatim(payload)
        except Exception as e:
            logger.warning(
                "Reverse geocoding failed, using fallback",
                extra={"latitude": latitude, "longitude": longitude, "error": str(e)},
            )
            return FALLBACK_RESULT

        await self.redis.setex(cache_key, self.cache_ttl_seconds, json.dumps(asdict(result)))
        return result
