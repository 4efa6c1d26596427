"""
Location API Endpoints.

The device runs the geolocation request itself and reports the outcome;
the server keeps the permission-denied preference and enriches fixes
with an address.
"""

from fastapi import APIRouter, Depends

from weighcheck.app.core.dependencies import get_current_worker, get_geocoder
from weighcheck.app.core.redis_client import get_redis
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.location import (
    LocationPreferenceResponse,
    LocationReport,
    LocationResolveResponse,
    LocationSampleResponse,
)
from weighcheck.app.services.geocoding import ReverseGeocoder
from weighcheck.app.services.location import (
    LocationProvider,
    LocationState,
    RedisPermissionPreference,
    ReportedPositionSource,
)

router = APIRouter(prefix="/location", tags=["Location"])


@router.post("/resolve", response_model=LocationResolveResponse)
async def resolve_location(
    report: LocationReport,
    current_worker: CurrentWorker = Depends(get_current_worker),
    redis=Depends(get_redis),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
):
    """
    Turn a device geolocation report into a location sample.

    A denied permission is remembered for the worker, so the next
    session starts in manual entry. Failures return the location error
    with manual entry as the suggested action.
    """
    provider = LocationProvider(
        source=ReportedPositionSource(
            latitude=report.latitude,
            longitude=report.longitude,
            accuracy=report.accuracy,
            error_code=report.error_code,
        ),
        preference=RedisPermissionPreference(redis, current_worker.worker_id),
        geocoder=geocoder,
        client_id=f"worker:{current_worker.worker_id}",
    )

    if report.manual_address is not None:
        sample = provider.use_manual(report.manual_address)
    else:
        sample = await provider.acquire()

    return LocationResolveResponse(
        state=provider.state,
        sample=LocationSampleResponse.model_validate(sample),
    )


@router.get("/preference", response_model=LocationPreferenceResponse)
async def location_preference(
    current_worker: CurrentWorker = Depends(get_current_worker),
    redis=Depends(get_redis),
):
    """Whether the entry form should open manual entry straight away."""
    denied = await RedisPermissionPreference(redis, current_worker.worker_id).is_denied()
    return LocationPreferenceResponse(
        permission_denied=denied,
        start_state=LocationState.MANUAL if denied else LocationState.LOADING,
    )
