"""
Worker statistics maintenance.

Statistics are rebuilt from the entry ledger, never incremented, so a
refresh always converges on the truth for the current settings.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.config import settings
from weighcheck.app.models.worker_statistics import WorkerStatistics
from weighcheck.app.repositories.entry_repository import EntryRepository
from weighcheck.app.repositories.settings_repository import CompensationSettings, SettingsRepository
from weighcheck.app.repositories.statistics_repository import StatisticsRepository
from weighcheck.app.services.compensation import compute_earnings, get_level

logger = logging.getLogger("weighcheck.statistics")


def _display_tz() -> ZoneInfo:
    return ZoneInfo(settings.display_timezone)


def to_local_date(moment: datetime) -> date:
    # SQLite hands back naive UTC timestamps
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(_display_tz()).date()


def local_day_start(now: Optional[datetime] = None) -> datetime:
    """UTC instant of the most recent local midnight."""
    now = now or datetime.now(timezone.utc)
    tz = _display_tz()
    local_midnight = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc)


class StatisticsService:

    @staticmethod
    async def refresh_worker(
        db: AsyncSession,
        worker_id: int,
        compensation: Optional[CompensationSettings] = None,
        now: Optional[datetime] = None,
    ) -> Optional[WorkerStatistics]:
        """
        Rebuild one worker's statistics row.

        A worker left without entries loses the row and returns None.
        """
        compensation = compensation or await SettingsRepository.get_compensation(db)
        rows = await EntryRepository.worker_entry_rows(db, worker_id)

        if not rows:
            await StatisticsRepository.delete(db, worker_id)
            return None

        today = to_local_date(now or datetime.now(timezone.utc))
        local_dates = [to_local_date(created_at) for created_at, _, _ in rows]
        total_entries = len(rows)
        daily_entries = sum(1 for d in local_dates if d == today)
        days_with_entries = len(set(local_dates))

        rate, bonus = compensation.effective_rate, compensation.effective_bonus
        breakdown = compute_earnings(total_entries, days_with_entries, rate, bonus)
        daily = compute_earnings(daily_entries, 1 if daily_entries else 0, rate, bonus)

        discrepancies = [discrepancy for _, discrepancy, _ in rows]
        return await StatisticsRepository.upsert(
            db,
            worker_id,
            {
                "worker_name": rows[-1][2],
                "total_entries": total_entries,
                "days_with_entries": days_with_entries,
                "total_earnings": breakdown.total_earnings,
                "daily_entries": daily_entries,
                "daily_earnings": daily.total_earnings,
                "level": get_level(total_entries).name,
                "avg_discrepancy": round(sum(discrepancies) / total_entries, 2),
                "first_entry_at": rows[0][0],
                "last_entry_at": rows[-1][0],
            },
        )

    @staticmethod
    async def today_figures(
        db: AsyncSession,
        worker_id: int,
        compensation: CompensationSettings,
        now: Optional[datetime] = None,
    ) -> Tuple[int, float]:
        """
        (entries, earnings) of the current local day, counted at read time.

        The stored daily figures belong to the day of the last refresh.
        """
        count = await EntryRepository.worker_count_since(db, worker_id, local_day_start(now))
        daily = compute_earnings(
            count, 1 if count else 0, compensation.effective_rate, compensation.effective_bonus
        )
        return count, daily.total_earnings

    @staticmethod
    async def refresh_all(db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Rebuild every worker's statistics; returns the number of workers touched."""
        compensation = await SettingsRepository.get_compensation(db)
        worker_ids = set(await EntryRepository.worker_ids(db))
        worker_ids.update(stats.worker_id for stats in await StatisticsRepository.all(db))

        for worker_id in sorted(worker_ids):
            await StatisticsService.refresh_worker(db, worker_id, compensation, now)

        logger.info("Worker statistics recalculated", extra={"workers": len(worker_ids)})
        return len(worker_ids)
