"""
Entry repository.

All reads and writes of the ``entries`` table go through here. Receipt
uniqueness is left to the database: a duplicate surfaces as an
IntegrityError on flush and is translated to ``DuplicateReceiptError``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.exceptions import DuplicateReceiptError
from weighcheck.app.models.entry import Entry
from weighcheck.app.models.entry_enums import EntryStatus


class EntryRepository:

    @staticmethod
    async def create(db: AsyncSession, entry: Entry) -> Entry:
        """
        Insert a new entry and commit.

        Raises:
            DuplicateReceiptError: the receipt number is already recorded
        """
        receipt_number = entry.receipt_number
        db.add(entry)
        try:
            await db.flush()  # UNIQUE(receipt_number) is enforced here
        except IntegrityError:
            await db.rollback()
            raise DuplicateReceiptError(receipt_number)

        await db.commit()
        await db.refresh(entry)
        return entry

    @staticmethod
    async def get(db: AsyncSession, entry_id: int) -> Optional[Entry]:
        result = await db.execute(select(Entry).where(Entry.id == entry_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_many(db: AsyncSession, entry_ids: Sequence[int]) -> List[Entry]:
        result = await db.execute(select(Entry).where(Entry.id.in_(entry_ids)).order_by(Entry.id))
        return list(result.scalars().all())

    @staticmethod
    def _filtered(query, worker_id: Optional[int], status: Optional[EntryStatus], search: Optional[str]):
        if worker_id is not None:
            query = query.where(Entry.worker_id == worker_id)
        if status is not None:
            query = query.where(Entry.status == status)
        if search:
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            query = query.where(
                or_(
                    Entry.receipt_number.ilike(pattern, escape="\\"),
                    Entry.worker_name.ilike(pattern, escape="\\"),
                )
            )
        return query

    @staticmethod
    async def list(
        db: AsyncSession,
        worker_id: Optional[int] = None,
        status: Optional[EntryStatus] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[List[Entry], int]:
        """
        Page through entries, newest first.

        Returns:
            (entries, total matching count)
        """
        count_query = EntryRepository._filtered(select(func.count(Entry.id)), worker_id, status, search)
        total = (await db.execute(count_query)).scalar_one()

        query = EntryRepository._filtered(select(Entry), worker_id, status, search)
        query = query.order_by(Entry.created_at.desc(), Entry.id.desc()).offset(offset).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    @staticmethod
    async def update(db: AsyncSession, entry: Entry, changes: Dict[str, Any], updated_by: int) -> Entry:
        for field, value in changes.items():
            setattr(entry, field, value)
        entry.updated_by = updated_by
        await db.commit()
        await db.refresh(entry)
        return entry

    @staticmethod
    async def delete(db: AsyncSession, entry: Entry) -> None:
        await db.delete(entry)
        await db.commit()

    @staticmethod
    async def bulk_update_status(
        db: AsyncSession, entry_ids: Sequence[int], status: EntryStatus, updated_by: int
    ) -> int:
        result = await db.execute(
            update(Entry)
            .where(Entry.id.in_(entry_ids))
            .values(status=status, updated_by=updated_by)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def bulk_delete(db: AsyncSession, entry_ids: Sequence[int]) -> int:
        result = await db.execute(
            delete(Entry).where(Entry.id.in_(entry_ids)).execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def clear_photo(db: AsyncSession, entry: Entry, slot: int) -> None:
        setattr(entry, f"photo_url_{slot}", None)
        await db.commit()

    @staticmethod
    async def stats(db: AsyncSession, since: datetime, worker_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Aggregate figures: totals, entries since ``since``, mean discrepancy.

        ``total_photos`` counts two photos per entry.
        """
        base = select(func.count(Entry.id), func.avg(Entry.discrepancy))
        today = select(func.count(Entry.id)).where(Entry.created_at >= since)
        if worker_id is not None:
            base = base.where(Entry.worker_id == worker_id)
            today = today.where(Entry.worker_id == worker_id)

        total, avg_discrepancy = (await db.execute(base)).one()
        today_entries = (await db.execute(today)).scalar_one()

        return {
            "total_entries": total,
            "today_entries": today_entries,
            "avg_discrepancy": round(avg_discrepancy or 0, 2),
            "total_photos": total * 2,
        }

    @staticmethod
    async def worker_entry_rows(db: AsyncSession, worker_id: int) -> List[tuple]:
        """(created_at, discrepancy, worker_name) of every entry of one worker, oldest first."""
        result = await db.execute(
            select(Entry.created_at, Entry.discrepancy, Entry.worker_name)
            .where(Entry.worker_id == worker_id)
            .order_by(Entry.created_at, Entry.id)
        )
        return list(result.all())

    @staticmethod
    async def worker_ids(db: AsyncSession) -> List[int]:
        result = await db.execute(select(Entry.worker_id).distinct())
        return [row[0] for row in result.all()]

    @staticmethod
    async def worker_count_since(db: AsyncSession, worker_id: int, since: datetime) -> int:
        result = await db.execute(
            select(func.count(Entry.id)).where(Entry.worker_id == worker_id, Entry.created_at >= since)
        )
        return result.scalar_one()

    @staticmethod
    async def counts_since(db: AsyncSession, since: datetime) -> List[tuple]:
        """(worker_id, worker_name, entry count) per worker with entries since ``since``."""
        result = await db.execute(
            select(Entry.worker_id, func.max(Entry.worker_name), func.count(Entry.id))
            .where(Entry.created_at >= since)
            .group_by(Entry.worker_id)
        )
        return list(result.all())
