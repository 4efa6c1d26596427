"""
Admin API Endpoints.

Audit trail browsing and evidence photo management.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.core.dependencies import get_uploader
from weighcheck.app.core.exceptions import ValidationError
from weighcheck.app.core.guards import require_admin
from weighcheck.app.db.session import get_db
from weighcheck.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.evidence import PhotoDeleteRequest, PhotoDeleteResponse
from weighcheck.app.services.audit import get_audit_trail
from weighcheck.app.services.entries import EntryService
from weighcheck.app.services.storage import EvidenceUploader

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    actor_id: Optional[int] = Query(None, description="Filter by actor"),
    action: Optional[str] = Query(None, description="Filter by action, e.g. entry.bulk_delete"),
    admin: CurrentWorker = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail (admin-only).

    Most recent events first.
    """
    logs, total = await get_audit_trail(
        db,
        actor_id=actor_id,
        action=action,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size
    )


@router.delete("/photos", response_model=PhotoDeleteResponse)
async def delete_photos(
    request: PhotoDeleteRequest,
    admin: CurrentWorker = Depends(require_admin),
    uploader: EvidenceUploader = Depends(get_uploader),
    db: AsyncSession = Depends(get_db)
):
    """Delete evidence photos from storage and detach them from their entries."""
    if not request.photo_ids:
        raise ValidationError("No photos specified for deletion", details={"field": "photo_ids"})

    result = await EntryService.purge_photos(db, uploader, request.photo_ids, admin)
    return PhotoDeleteResponse(**result)
