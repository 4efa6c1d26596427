"""
Entry Pydantic schemas.

Defines request and response models for entry capture and review.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from weighcheck.app.models.entry_enums import EntryStatus


class EntryCreate(BaseModel):
    """Schema for submitting a new entry."""
    worker_name: str = Field(..., min_length=1, max_length=100, description="Name shown on the entry")
    receipt_number: str = Field(..., min_length=1, max_length=50, description="Receipt (waybill) number")
    manifest_weight: float = Field(..., gt=0, description="Weight on the receipt, kg")
    measured_weight: float = Field(..., gt=0, description="Weight on the scale, kg")
    photo_url_1: str = Field(..., min_length=1, max_length=500, description="First evidence photo")
    photo_url_2: Optional[str] = Field(None, max_length=500, description="Second evidence photo")
    note: Optional[str] = Field(None, max_length=500)
    gps_latitude: Optional[float] = Field(None, ge=-90, le=90)
    gps_longitude: Optional[float] = Field(None, ge=-180, le=180)
    location_text: Optional[str] = Field(None, max_length=500)


class EntryUpdate(BaseModel):
    """Schema for updating an entry: note by its owner, status by an admin."""
    status: Optional[EntryStatus] = None
    note: Optional[str] = Field(None, max_length=500)

    model_config = {"extra": "forbid"}


class EntryResponse(BaseModel):
    """Schema for entry response."""
    id: int
    receipt_number: str
    worker_id: int
    worker_name: str
    manifest_weight: float
    measured_weight: float
    discrepancy: float
    status: EntryStatus
    note: Optional[str]
    photo_url_1: Optional[str]
    photo_url_2: Optional[str]
    gps_latitude: Optional[float]
    gps_longitude: Optional[float]
    location_text: Optional[str]
    created_at: datetime
    updated_at: datetime
    updated_by: Optional[int]

    class Config:
        from_attributes = True


class EntryCreateResponse(BaseModel):
    """Created entry plus evidence naming warnings."""
    entry: EntryResponse
    stale_photo_slots: List[int] = Field(
        default_factory=list,
        description="Photo slots uploaded under a different receipt number",
    )


class EntryListResponse(BaseModel):
    """Schema for paginated entry list."""
    entries: List[EntryResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class EntryStatsResponse(BaseModel):
    total_entries: int
    today_entries: int
    avg_discrepancy: float
    total_photos: int


class BulkUpdateRequest(BaseModel):
    """Schema for updating the status of many entries."""
    entry_ids: List[int] = Field(..., min_length=1, description="Entries to update")
    status: EntryStatus


class BulkDeleteRequest(BaseModel):
    """Schema for deleting many entries."""
    entry_ids: List[int] = Field(..., min_length=1, description="Entries to delete")


class BulkActionResponse(BaseModel):
    requested: int
    affected: int
    missing_ids: List[int] = Field(default_factory=list)
