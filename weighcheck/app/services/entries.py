"""
Entry service.

Access rules and audit trail around the entry repository. Every mutation
refreshes the statistics of the workers it touched.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from weighcheck.app.core.guards import OwnershipGuard
from weighcheck.app.models.entry import Entry
from weighcheck.app.models.entry_enums import EntryStatus
from weighcheck.app.repositories.entry_repository import EntryRepository
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.entry import EntryCreate, EntryUpdate
from weighcheck.app.services.audit import AuditAction, log_event
from weighcheck.app.services.filenames import find_stale_slots
from weighcheck.app.services.statistics import StatisticsService, local_day_start
from weighcheck.app.services.storage import EvidenceUploader

logger = logging.getLogger("weighcheck.entries")
ownership_guard = OwnershipGuard()


def compute_discrepancy(manifest_weight: float, measured_weight: float) -> float:
    """Measured minus manifested weight, sign kept: positive means heavier than declared."""
    return round(measured_weight - manifest_weight, 2)


def _snapshot(entry: Entry) -> dict:
    return {
        "id": entry.id,
        "receipt_number": entry.receipt_number,
        "worker_id": entry.worker_id,
        "worker_name": entry.worker_name,
        "manifest_weight": entry.manifest_weight,
        "measured_weight": entry.measured_weight,
        "discrepancy": entry.discrepancy,
    }


async def _refresh(db: AsyncSession, worker_ids: Iterable[int]) -> None:
    for worker_id in sorted(set(worker_ids)):
        await StatisticsService.refresh_worker(db, worker_id)


class EntryService:

    @staticmethod
    async def create_entry(
        db: AsyncSession, data: EntryCreate, worker: CurrentWorker
    ) -> Tuple[Entry, List[int]]:
        """
        Record a new entry for the calling worker.

        Returns:
            (entry, photo slots named after a different receipt number)

        Raises:
            DuplicateReceiptError: receipt number already recorded
        """
        receipt_number = data.receipt_number.strip()
        entry = Entry(
            receipt_number=receipt_number,
            worker_id=worker.worker_id,
            worker_name=data.worker_name.strip(),
            manifest_weight=data.manifest_weight,
            measured_weight=data.measured_weight,
            discrepancy=compute_discrepancy(data.manifest_weight, data.measured_weight),
            status=EntryStatus.PENDING,
            photo_url_1=data.photo_url_1,
            photo_url_2=data.photo_url_2,
            note=data.note,
            gps_latitude=data.gps_latitude,
            gps_longitude=data.gps_longitude,
            location_text=data.location_text,
        )
        entry = await EntryRepository.create(db, entry)
        stale_slots = find_stale_slots(receipt_number, {1: entry.photo_url_1, 2: entry.photo_url_2})

        await log_event(
            db=db,
            action=AuditAction.ENTRY_CREATED,
            actor_id=worker.worker_id,
            actor_name=worker.username,
            resource=f"entry:{entry.id}",
            details={
                "receipt_number": entry.receipt_number,
                "manifest_weight": entry.manifest_weight,
                "measured_weight": entry.measured_weight,
                "discrepancy": entry.discrepancy,
            },
        )
        await _refresh(db, [worker.worker_id])
        await db.refresh(entry)

        if stale_slots:
            logger.warning(
                "Evidence named after a different receipt",
                extra={"entry_id": entry.id, "slots": stale_slots},
            )
        return entry, stale_slots

    @staticmethod
    async def get_entry(db: AsyncSession, entry_id: int, worker: CurrentWorker) -> Entry:
        entry = await EntryRepository.get(db, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Entry", entry_id)
        ownership_guard.enforce(entry.worker_id, worker, "entry")
        return entry

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        worker: CurrentWorker,
        page: int = 1,
        page_size: int = 20,
        status: Optional[EntryStatus] = None,
        search: Optional[str] = None,
        worker_id: Optional[int] = None,
    ) -> Tuple[List[Entry], int]:
        """Non-admins always see only their own entries, whatever ``worker_id`` says."""
        owner_filter = ownership_guard.filter_by_ownership(worker)
        if owner_filter is None:
            owner_filter = worker_id

        return await EntryRepository.list(
            db,
            worker_id=owner_filter,
            status=status,
            search=search.strip() if search else None,
            offset=(page - 1) * page_size,
            limit=page_size,
        )

    @staticmethod
    async def update_entry(
        db: AsyncSession, entry_id: int, data: EntryUpdate, worker: CurrentWorker
    ) -> Entry:
        """
        Apply a partial update.

        Only admins change status; owners may only change the note.
        """
        changes = data.model_dump(exclude_unset=True)
        if changes.get("status") is None:
            changes.pop("status", None)
        if "status" in changes and not worker.is_admin:
            raise InsufficientPermissionsError(
                "Only an admin can change the status of an entry",
                details={"field": "status"},
            )

        entry = await EntryService.get_entry(db, entry_id, worker)
        previous = {field: getattr(entry, field) for field in changes}

        entry = await EntryRepository.update(db, entry, changes, worker.worker_id)
        owner_id = entry.worker_id

        await log_event(
            db=db,
            action=AuditAction.ENTRY_UPDATED,
            actor_id=worker.worker_id,
            actor_name=worker.username,
            resource=f"entry:{entry.id}",
            details={
                "receipt_number": entry.receipt_number,
                "changes": {
                    field: {
                        "from": getattr(previous[field], "value", previous[field]),
                        "to": getattr(value, "value", value),
                    }
                    for field, value in changes.items()
                },
            },
        )
        await _refresh(db, [owner_id])
        await db.refresh(entry)
        return entry

    @staticmethod
    async def delete_entry(db: AsyncSession, entry_id: int, admin: CurrentWorker) -> None:
        entry = await EntryRepository.get(db, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Entry", entry_id)

        snapshot = _snapshot(entry)
        await EntryRepository.delete(db, entry)

        await log_event(
            db=db,
            action=AuditAction.ENTRY_DELETED,
            actor_id=admin.worker_id,
            actor_name=admin.username,
            resource=f"entry:{entry_id}",
            details={"deleted_entry": snapshot},
        )
        await _refresh(db, [snapshot["worker_id"]])

    @staticmethod
    async def bulk_update_status(
        db: AsyncSession, entry_ids: List[int], status: EntryStatus, admin: CurrentWorker
    ) -> Tuple[int, List[int]]:
        """
        Set ``status`` on every listed entry.

        Returns:
            (rows updated, requested ids that do not exist)
        """
        requested = list(dict.fromkeys(entry_ids))
        affected = await EntryRepository.get_many(db, requested)
        affected_ids = [entry.id for entry in affected]
        owners = [entry.worker_id for entry in affected]

        count = await EntryRepository.bulk_update_status(db, requested, status, admin.worker_id)

        await log_event(
            db=db,
            action=AuditAction.ENTRY_BULK_UPDATED,
            actor_id=admin.worker_id,
            actor_name=admin.username,
            resource="entries",
            details={
                "entry_ids": requested,
                "count": count,
                "new_status": status.value,
                "affected_entries": affected_ids,
            },
        )
        await _refresh(db, owners)
        return count, [entry_id for entry_id in requested if entry_id not in affected_ids]

    @staticmethod
    async def bulk_delete(
        db: AsyncSession, entry_ids: List[int], admin: CurrentWorker
    ) -> Tuple[int, List[int]]:
        requested = list(dict.fromkeys(entry_ids))
        doomed = await EntryRepository.get_many(db, requested)
        snapshots = [_snapshot(entry) for entry in doomed]

        count = await EntryRepository.bulk_delete(db, requested)

        await log_event(
            db=db,
            action=AuditAction.ENTRY_BULK_DELETED,
            actor_id=admin.worker_id,
            actor_name=admin.username,
            resource="entries",
            details={
                "entry_ids": requested,
                "count": count,
                "deleted_entries": snapshots,
            },
        )
        await _refresh(db, [s["worker_id"] for s in snapshots])
        found = {s["id"] for s in snapshots}
        return count, [entry_id for entry_id in requested if entry_id not in found]

    @staticmethod
    async def stats(db: AsyncSession, worker: CurrentWorker) -> dict:
        return await EntryRepository.stats(
            db,
            since=local_day_start(),
            worker_id=ownership_guard.filter_by_ownership(worker),
        )

    @staticmethod
    async def purge_photos(
        db: AsyncSession, uploader: EvidenceUploader, photo_ids: List[str], admin: CurrentWorker
    ) -> dict:
        """
        Delete evidence photos from storage and clear them on their entries.

        ``photo_ids`` are ``{entry_id}_{slot}``. Storage failures do not stop
        the database side.
        """
        targets = []
        failed = 0
        for photo_id in dict.fromkeys(photo_ids):
            entry_part, _, slot_part = photo_id.partition("_")
            if not entry_part.isdigit() or slot_part not in ("1", "2"):
                failed += 1
                continue
            entry = await EntryRepository.get(db, int(entry_part))
            slot = int(slot_part)
            url = getattr(entry, f"photo_url_{slot}") if entry else None
            if not url:
                failed += 1
                continue
            targets.append((entry, slot, url))

        public_ids = [pid for pid in (uploader.extract_public_id(url) for _, _, url in targets) if pid]
        storage_result = {"deleted": [], "failed": []}
        if public_ids:
            storage_result = await uploader.delete(public_ids)

        cleared = []
        for entry, slot, url in targets:
            await EntryRepository.clear_photo(db, entry, slot)
            cleared.append({"entry_id": entry.id, "slot": slot, "url": url})

        await log_event(
            db=db,
            action=AuditAction.PHOTOS_DELETED,
            actor_id=admin.worker_id,
            actor_name=admin.username,
            resource="photos",
            details={
                "photo_ids": list(photo_ids),
                "cleared": cleared,
                "storage_deleted": storage_result["deleted"],
                "storage_failed": storage_result["failed"],
            },
        )

        return {
            "deleted": len(cleared),
            "failed": failed,
            "storage_deleted": len(storage_result["deleted"]),
            "storage_failed": len(storage_result["failed"]),
        }
