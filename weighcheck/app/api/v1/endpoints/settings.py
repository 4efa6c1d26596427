"""
Compensation Settings API Endpoints (admin only for writes).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.dependencies import get_current_worker
from weighcheck.app.core.guards import require_admin
from weighcheck.app.db.session import get_db
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.compensation import (
    CompensationSettingsResponse,
    CompensationSettingsUpdate,
    RecalculateResponse,
)
from weighcheck.app.services.compensation_settings import CompensationSettingsService

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/earnings", response_model=CompensationSettingsResponse)
async def get_earnings_settings(
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    return CompensationSettingsResponse.model_validate(await CompensationSettingsService.get(db))


@router.put("/earnings", response_model=CompensationSettingsResponse)
async def update_earnings_settings(
    settings_data: CompensationSettingsUpdate,
    admin: CurrentWorker = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Change compensation settings.

    Every worker's statistics are recomputed after the change is saved.
    """
    updated = await CompensationSettingsService.update(
        db,
        admin,
        rate_per_entry=settings_data.rate_per_entry,
        daily_bonus=settings_data.daily_bonus,
        enabled=settings_data.enabled,
    )
    return CompensationSettingsResponse.model_validate(updated)


@router.post("/earnings/recalculate", response_model=RecalculateResponse)
async def recalculate_statistics(
    admin: CurrentWorker = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Rebuild every worker's statistics from the entry ledger."""
    return RecalculateResponse(workers=await CompensationSettingsService.recalculate(db, admin))
