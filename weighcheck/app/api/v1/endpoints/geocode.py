"""
Reverse geocoding proxy endpoint.
"""

from fastapi import APIRouter, Depends, Query, Request

from weighcheck.app.core.dependencies import get_current_worker, get_geocoder
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.location import GeocodeResponse
from weighcheck.app.services.geocoding import ReverseGeocoder

router = APIRouter(prefix="/geocode", tags=["Location"])


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")


@router.get("", response_model=GeocodeResponse)
async def reverse_geocode(
    request: Request,
    lat: float = Query(..., description="Latitude"),
    lon: float = Query(..., description="Longitude"),
    current_worker: CurrentWorker = Depends(get_current_worker),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
):
    """
    Address for a coordinate pair.

    One lookup per second per client IP (429 otherwise). Upstream
    failures return "Unknown Location" with ``fallback`` set.
    """
    result = await geocoder.reverse(lat, lon, client_id=client_ip(request))
    return GeocodeResponse.model_validate(result)
