"""
Evidence upload schemas.
"""

from pydantic import BaseModel
from typing import Optional


class EvidenceResponse(BaseModel):
    """Stored evidence photo for one slot."""
    slot: int
    url: str
    filename: str
    compressed: bool
    original_size: int
    final_size: int
    compression_note: Optional[str] = None

    class Config:
        from_attributes = True


class PhotoDeleteRequest(BaseModel):
    """Photos to purge, as ``{entry_id}_{slot}`` ids."""
    photo_ids: list[str]


class PhotoDeleteResponse(BaseModel):
    deleted: int
    failed: int
    storage_deleted: int
    storage_failed: int
