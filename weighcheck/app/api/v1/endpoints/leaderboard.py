"""
Leaderboard API Endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.dependencies import get_current_worker
from weighcheck.app.db.session import get_db
from weighcheck.app.models.entry_enums import LeaderboardWindow
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.leaderboard import LeaderboardResponse, LeaderboardRow
from weighcheck.app.services.leaderboard import find_rank, load_standings, rank

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    window: LeaderboardWindow = Query(LeaderboardWindow.ALLTIME, alias="type"),
    limit: int = Query(10, ge=1, le=100),
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    """
    Top workers by entries, then earnings.

    The caller's own rank is included even when outside the top ``limit``.
    """
    standings = await load_standings(db, window)
    full_ranking = rank(standings, window)

    return LeaderboardResponse(
        type=window,
        leaderboard=[LeaderboardRow.model_validate(row) for row in full_ranking[:limit]],
        current_worker_rank=find_rank(standings, current_worker.worker_id, window),
        total_ranked=len(full_ranking),
    )
