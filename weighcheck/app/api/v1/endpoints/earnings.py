"""
Earnings API Endpoints.

Earnings are derived on read from the worker's statistics, today's entries and the
current compensation settings.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.dependencies import get_current_worker
from weighcheck.app.core.guards import OwnershipGuard
from weighcheck.app.db.session import get_db
from weighcheck.app.models.entry_enums import LeaderboardWindow
from weighcheck.app.repositories.settings_repository import SettingsRepository
from weighcheck.app.repositories.statistics_repository import StatisticsRepository
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.compensation import (
    EarningsBreakdownResponse,
    EarningsEstimateResponse,
    WorkerEarningsResponse,
)
from weighcheck.app.services.compensation import (
    EarningsBreakdown,
    compute_earnings,
    daily_average,
    entries_to_target,
    estimate_earnings,
    explain,
    get_level,
)
from weighcheck.app.services.leaderboard import find_rank, load_standings
from weighcheck.app.services.statistics import StatisticsService

router = APIRouter(prefix="/earnings", tags=["Earnings"])
ownership_guard = OwnershipGuard()


def _breakdown_response(breakdown: EarningsBreakdown) -> EarningsBreakdownResponse:
    return EarningsBreakdownResponse(
        total_entries=breakdown.total_entries,
        days_with_entries=breakdown.days_with_entries,
        rate_per_entry=breakdown.rate_per_entry,
        daily_bonus=breakdown.daily_bonus,
        entries_earnings=breakdown.entries_earnings,
        bonus_earnings=breakdown.bonus_earnings,
        total_earnings=breakdown.total_earnings,
        explanation=explain(breakdown),
    )


@router.get("/estimate", response_model=EarningsEstimateResponse)
async def estimate(
    entries_per_day: int = Query(..., ge=0, le=10000),
    days: int = Query(..., ge=0, le=366),
    target: Optional[float] = Query(None, ge=0, description="Target earnings"),
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    """Earnings for a hypothetical pace at the current rates."""
    compensation = await SettingsRepository.get_compensation(db)
    breakdown = estimate_earnings(
        entries_per_day, days, compensation.effective_rate, compensation.effective_bonus
    )

    remaining = None
    if target is not None and compensation.effective_rate > 0:
        remaining = entries_to_target(target, breakdown.total_earnings, compensation.effective_rate)

    return EarningsEstimateResponse(breakdown=_breakdown_response(breakdown), entries_to_target=remaining)


@router.get("/{worker_id}", response_model=WorkerEarningsResponse)
async def worker_earnings(
    worker_id: int,
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    """
    Earnings, level and all-time rank of one worker.

    Workers may only read their own earnings.
    """
    ownership_guard.enforce(worker_id, current_worker, "earnings")

    compensation = await SettingsRepository.get_compensation(db)
    stats = await StatisticsRepository.get(db, worker_id)

    total_entries = stats.total_entries if stats else 0
    days_with_entries = stats.days_with_entries if stats else 0
    breakdown = compute_earnings(
        total_entries, days_with_entries, compensation.effective_rate, compensation.effective_bonus
    )
    daily_entries, daily_earnings = await StatisticsService.today_figures(db, worker_id, compensation)
    standings = await load_standings(db, LeaderboardWindow.ALLTIME)

    return WorkerEarningsResponse(
        worker_id=worker_id,
        worker_name=stats.worker_name if stats else None,
        level=get_level(total_entries).name,
        breakdown=_breakdown_response(breakdown),
        daily_entries=daily_entries,
        daily_earnings=daily_earnings,
        daily_average=daily_average(breakdown.total_earnings, days_with_entries),
        avg_discrepancy=stats.avg_discrepancy if stats else 0,
        rank=find_rank(standings, worker_id, LeaderboardWindow.ALLTIME),
        first_entry_at=stats.first_entry_at if stats else None,
        last_entry_at=stats.last_entry_at if stats else None,
        enabled=compensation.enabled,
    )
