"""
Entry API Endpoints.

Workers submit and annotate their own entries; admins review, bulk-update
and delete.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.dependencies import get_current_worker
from weighcheck.app.core.guards import require_admin
from weighcheck.app.db.session import get_db
from weighcheck.app.models.entry_enums import EntryStatus
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.entry import (
    BulkActionResponse,
    BulkDeleteRequest,
    BulkUpdateRequest,
    EntryCreate,
    EntryCreateResponse,
    EntryListResponse,
    EntryResponse,
    EntryStatsResponse,
    EntryUpdate,
)
from weighcheck.app.services.entries import EntryService

router = APIRouter(prefix="/entries", tags=["Entries"])


@router.post("", response_model=EntryCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_data: EntryCreate,
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    """
    Submit a new entry.

    Returns 409 when the receipt number is already recorded.
    """
    entry, stale_slots = await EntryService.create_entry(db, entry_data, current_worker)
    return EntryCreateResponse(
        entry=EntryResponse.model_validate(entry),
        stale_photo_slots=stale_slots,
    )


@router.get("", response_model=EntryListResponse)
async def list_entries(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    status_filter: Optional[EntryStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100, description="Receipt number or worker name"),
    worker_id: Optional[int] = Query(None, description="Owner filter (admins only)"),
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    entries, total = await EntryService.list_entries(
        db,
        current_worker,
        page=page,
        page_size=page_size,
        status=status_filter,
        search=search,
        worker_id=worker_id,
    )
    return EntryListResponse(
        entries=[EntryResponse.model_validate(entry) for entry in entries],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/stats", response_model=EntryStatsResponse)
async def entry_stats(
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    """Totals for the caller's entries (all entries for admins)."""
    return EntryStatsResponse(**await EntryService.stats(db, current_worker))


@router.post("/bulk-update", response_model=BulkActionResponse)
async def bulk_update_entries(
    request: BulkUpdateRequest,
    admin: CurrentWorker = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    count, missing = await EntryService.bulk_update_status(db, request.entry_ids, request.status, admin)
    return BulkActionResponse(requested=len(set(request.entry_ids)), affected=count, missing_ids=missing)


@router.post("/bulk-delete", response_model=BulkActionResponse)
async def bulk_delete_entries(
    request: BulkDeleteRequest,
    admin: CurrentWorker = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    count, missing = await EntryService.bulk_delete(db, request.entry_ids, admin)
    return BulkActionResponse(requested=len(set(request.entry_ids)), affected=count, missing_ids=missing)


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(
    entry_id: int,
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    entry = await EntryService.get_entry(db, entry_id, current_worker)
    return EntryResponse.model_validate(entry)


@router.patch("/{entry_id}", response_model=EntryResponse)
async def update_entry(
    entry_id: int,
    entry_data: EntryUpdate,
    current_worker: CurrentWorker = Depends(get_current_worker),
    db: AsyncSession = Depends(get_db)
):
    """
    Update an entry.

    Owners may change the note; only admins may change the status.
    """
    entry = await EntryService.update_entry(db, entry_id, entry_data, current_worker)
    return EntryResponse.model_validate(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: int,
    admin: CurrentWorker = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await EntryService.delete_entry(db, entry_id, admin)
