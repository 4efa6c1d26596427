"""
Location Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from weighcheck.app.services.location import LocationState


class LocationReport(BaseModel):
    """
    Raw geolocation result reported by the device.

    Either coordinates, a browser error code (1 denied, 2 unavailable,
    3 timeout), or a manual address.
    """
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0, description="Accuracy radius in meters")
    error_code: Optional[int] = Field(None, ge=1, le=3)
    manual_address: Optional[str] = Field(None, max_length=500)


class LocationSampleResponse(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float]
    captured_at: datetime
    address: Optional[str]
    city: Optional[str]
    country: Optional[str]
    is_manual: bool

    class Config:
        from_attributes = True


class LocationResolveResponse(BaseModel):
    state: LocationState
    sample: Optional[LocationSampleResponse] = None


class LocationPreferenceResponse(BaseModel):
    permission_denied: bool
    start_state: LocationState


class GeocodeResponse(BaseModel):
    address: str
    city: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    cached: bool = False
    fallback: bool = False

    class Config:
        from_attributes = True
