"""
Compensation settings service.

The settings write commits first; the statistics recomputation that
follows runs in its own commits, so readers may briefly see old earnings.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.repositories.settings_repository import CompensationSettings, SettingsRepository
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.services.audit import AuditAction, log_event
from weighcheck.app.services.statistics import StatisticsService


class CompensationSettingsService:

    @staticmethod
    async def get(db: AsyncSession) -> CompensationSettings:
        return await SettingsRepository.get_compensation(db)

    @staticmethod
    async def update(
        db: AsyncSession,
        admin: CurrentWorker,
        rate_per_entry: Optional[float] = None,
        daily_bonus: Optional[float] = None,
        enabled: Optional[bool] = None,
    ) -> CompensationSettings:
        """
        Change compensation settings and recompute every worker's earnings.

        Negative amounts are rejected by the request schema.
        """
        before = await SettingsRepository.get_compensation(db)
        after = await SettingsRepository.save_compensation(
            db, rate_per_entry, daily_bonus, enabled, updated_by=admin.worker_id
        )

        await log_event(
            db=db,
            action=AuditAction.SETTINGS_UPDATED,
            actor_id=admin.worker_id,
            actor_name=admin.username,
            resource="settings:earnings",
            details={
                "before": {
                    "rate_per_entry": before.rate_per_entry,
                    "daily_bonus": before.daily_bonus,
                    "enabled": before.enabled,
                },
                "after": {
                    "rate_per_entry": after.rate_per_entry,
                    "daily_bonus": after.daily_bonus,
                    "enabled": after.enabled,
                },
            },
        )

        await StatisticsService.refresh_all(db)
        return after

    @staticmethod
    async def recalculate(db: AsyncSession, admin: CurrentWorker) -> int:
        workers = await StatisticsService.refresh_all(db)
        await log_event(
            db=db,
            action=AuditAction.STATISTICS_RECALCULATED,
            actor_id=admin.worker_id,
            actor_name=admin.username,
            resource="worker_statistics",
            details={"workers": workers},
        )
        return workers
