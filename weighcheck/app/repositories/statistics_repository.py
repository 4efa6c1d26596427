"""
Worker statistics repository.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.models.worker_statistics import WorkerStatistics

logger = logging.getLogger("weighcheck.statistics")


class StatisticsRepository:

    @staticmethod
    async def get(db: AsyncSession, worker_id: int) -> Optional[WorkerStatistics]:
        result = await db.execute(select(WorkerStatistics).where(WorkerStatistics.worker_id == worker_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def all(db: AsyncSession) -> List[WorkerStatistics]:
        result = await db.execute(select(WorkerStatistics).order_by(WorkerStatistics.worker_id))
        return list(result.scalars().all())

    @staticmethod
    async def upsert(db: AsyncSession, worker_id: int, values: Dict) -> WorkerStatistics:
        """
        Insert or overwrite the worker's row.

        A concurrent refresh may insert the row between our read and our
        insert; the primary key rejects the second insert and we fall back
        to overwriting the row that won.
        """
        stats = await StatisticsRepository.get(db, worker_id)
        if stats is None:
            stats = WorkerStatistics(worker_id=worker_id, **values)
            db.add(stats)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info("Statistics row inserted concurrently", extra={"worker_id": worker_id})
                stats = await StatisticsRepository.get(db, worker_id)
            else:
                await db.refresh(stats)
                return stats

        for field, value in values.items():
            setattr(stats, field, value)

        await db.commit()
        await db.refresh(stats)
        return stats

    @staticmethod
    async def delete(db: AsyncSession, worker_id: int) -> None:
        stats = await StatisticsRepository.get(db, worker_id)
        if stats is not None:
            await db.delete(stats)
            await db.commit()
