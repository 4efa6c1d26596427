"""
Compensation Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class EarningsBreakdownResponse(BaseModel):
    total_entries: int
    days_with_entries: int
    rate_per_entry: float
    daily_bonus: float
    entries_earnings: float
    bonus_earnings: float
    total_earnings: float
    explanation: List[str] = []

    class Config:
        from_attributes = True


class WorkerEarningsResponse(BaseModel):
    """A worker's earnings, level and rank."""
    worker_id: int
    worker_name: Optional[str]
    level: str
    breakdown: EarningsBreakdownResponse
    daily_entries: int
    daily_earnings: float
    daily_average: float
    avg_discrepancy: float
    rank: Optional[int]
    first_entry_at: Optional[datetime]
    last_entry_at: Optional[datetime]
    enabled: bool


class EarningsEstimateResponse(BaseModel):
    breakdown: EarningsBreakdownResponse
    entries_to_target: Optional[int] = None


class CompensationSettingsResponse(BaseModel):
    rate_per_entry: float
    daily_bonus: float
    enabled: bool

    class Config:
        from_attributes = True


class CompensationSettingsUpdate(BaseModel):
    """Schema for changing compensation settings; omitted fields stay as they are."""
    rate_per_entry: Optional[float] = Field(None, ge=0)
    daily_bonus: Optional[float] = Field(None, ge=0)
    enabled: Optional[bool] = None


class RecalculateResponse(BaseModel):
    workers: int
