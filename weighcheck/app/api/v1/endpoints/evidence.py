"""
Evidence API Endpoints.

One request per photo slot. The device sends the photo together with
the receipt number and the location sample captured when processing began.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile

from weighcheck.app.core.config import settings
from weighcheck.app.core.dependencies import get_current_worker, get_evidence_pipeline
from weighcheck.app.core.exceptions import TooLargeError
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.evidence import EvidenceResponse
from weighcheck.app.services.evidence_pipeline import EvidencePipeline
from weighcheck.app.services.image_validation import UploadedImage
from weighcheck.app.services.location import LocationSample

router = APIRouter(prefix="/evidence", tags=["Evidence"])


def _location_from_form(
    latitude: Optional[float],
    longitude: Optional[float],
    accuracy: Optional[float],
    address: Optional[str],
    city: Optional[str],
    country: Optional[str],
    is_manual: bool,
    captured_at: Optional[datetime],
) -> Optional[LocationSample]:
    captured_at = captured_at or datetime.now(timezone.utc)
    if is_manual:
        if not address or not address.strip():
            return None
        return LocationSample.manual(address, captured_at)
    if latitude is None or longitude is None:
        return None
    return LocationSample(
        latitude=latitude,
        longitude=longitude,
        accuracy=accuracy,
        captured_at=captured_at,
        address=address,
        city=city,
        country=country,
    )


@router.post("/{slot}", response_model=EvidenceResponse)
async def upload_evidence(
    slot: int = Path(..., ge=1, le=2, description="Photo slot (1 or 2)"),
    photo: UploadFile = File(...),
    receipt_number: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None, ge=-90, le=90),
    longitude: Optional[float] = Form(None, ge=-180, le=180),
    accuracy: Optional[float] = Form(None, ge=0),
    address: Optional[str] = Form(None, max_length=500),
    city: Optional[str] = Form(None),
    country: Optional[str] = Form(None),
    is_manual: bool = Form(False),
    captured_at: Optional[datetime] = Form(None),
    current_worker: CurrentWorker = Depends(get_current_worker),
    pipeline: EvidencePipeline = Depends(get_evidence_pipeline),
):
    """
    Validate, compress, watermark and store one evidence photo.

    Returns the stored URL; an upload failure (502) can be retried with
    the same photo.
    """
    limit = settings.max_upload_bytes
    if photo.size is not None and photo.size > limit:
        raise TooLargeError(photo.size, limit)

    # Never buffer more than one byte past the ceiling; validation rejects the rest
    image = UploadedImage(
        filename=photo.filename or f"photo{slot}",
        content_type=photo.content_type,
        data=await photo.read(limit + 1),
    )
    location = _location_from_form(
        latitude, longitude, accuracy, address, city, country, is_manual, captured_at
    )

    result = await pipeline.process(
        image=image,
        slot=slot,
        receipt_number=receipt_number,
        location=location,
        timestamp=location.captured_at if location else None,
    )
    return EvidenceResponse.model_validate(result)
