"""
Leaderboard ranking.

Ranking over worker standings. Daily figures are computed from the
current local day's entries at query time; all-time figures come from
``worker_statistics``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.models.entry_enums import LeaderboardWindow
from weighcheck.app.repositories.entry_repository import EntryRepository
from weighcheck.app.repositories.settings_repository import SettingsRepository
from weighcheck.app.repositories.statistics_repository import StatisticsRepository
from weighcheck.app.services.compensation import compute_earnings
from weighcheck.app.services.statistics import local_day_start


@dataclass(frozen=True)
class WorkerStanding:
    """Figures of one worker in both windows, the input to ranking."""
    worker_id: int
    worker_name: Optional[str]
    total_entries: int = 0
    total_earnings: float = 0
    daily_entries: int = 0
    daily_earnings: float = 0
    level: Optional[str] = None

    def figures(self, window: LeaderboardWindow) -> Tuple[int, float]:
        if window == LeaderboardWindow.DAILY:
            return self.daily_entries, self.daily_earnings
        return self.total_entries, self.total_earnings


@dataclass(frozen=True)
class RankedWorker:
    rank: int
    worker_id: int
    worker_name: Optional[str]
    entries: int
    earnings: float
    level: Optional[str] = None


def rank(
    workers: Iterable[WorkerStanding],
    window: LeaderboardWindow = LeaderboardWindow.ALLTIME,
    limit: Optional[int] = None,
) -> List[RankedWorker]:
    """
    Order workers by window entries desc, then window earnings desc,
    then worker_id asc.

    Ranks are 1-based positions, so ties on entries are broken by
    earnings and never share a rank. Workers with no entries in the
    window are left out.
    """
    eligible = []
    for worker in workers:
        entries, earnings = worker.figures(window)
        if entries > 0:
            eligible.append((worker, entries, earnings))

    eligible.sort(key=lambda item: (-item[1], -item[2], item[0].worker_id))

    ranked = [
        RankedWorker(
            rank=position,
            worker_id=worker.worker_id,
            worker_name=worker.worker_name,
            entries=entries,
            earnings=earnings,
            level=worker.level,
        )
        for position, (worker, entries, earnings) in enumerate(eligible, start=1)
    ]

    if limit is not None:
        return ranked[:limit]
    return ranked


def find_rank(
    workers: Iterable[WorkerStanding],
    worker_id: int,
    window: LeaderboardWindow = LeaderboardWindow.ALLTIME,
) -> Optional[int]:
    """Rank of ``worker_id`` in the full ordering, None if unranked."""
    for ranked in rank(workers, window):
        if ranked.worker_id == worker_id:
            return ranked.rank
    return None


async def load_standings(
    db: AsyncSession,
    window: LeaderboardWindow,
    now: Optional[datetime] = None,
) -> List[WorkerStanding]:
    """
    Build standings for ``window``.

    All-time figures come from the statistics table; daily figures are
    counted from today's entries so they never lag behind a refresh.
    """
    statistics = {stats.worker_id: stats for stats in await StatisticsRepository.all(db)}

    if window == LeaderboardWindow.ALLTIME:
        return [
            WorkerStanding(
                worker_id=stats.worker_id,
                worker_name=stats.worker_name,
                total_entries=stats.total_entries,
                total_earnings=stats.total_earnings,
                level=stats.level,
            )
            for stats in statistics.values()
        ]

    compensation = await SettingsRepository.get_compensation(db)
    standings = []
    for worker_id, worker_name, count in await EntryRepository.counts_since(db, local_day_start(now)):
        daily = compute_earnings(count, 1, compensation.effective_rate, compensation.effective_bonus)
        stats = statistics.get(worker_id)
        standings.append(
            WorkerStanding(
                worker_id=worker_id,
                worker_name=worker_name,
                daily_entries=count,
                daily_earnings=daily.total_earnings,
                level=stats.level if stats else None,
            )
        )
    return standings
