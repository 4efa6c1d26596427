"""
Audit logging service for entry, evidence and settings actions.

Audit writes are best-effort: a failure is logged and swallowed so it can
never abort the action that triggered it.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func
from weighcheck.app.models.audit_log import AuditLog

logger = logging.getLogger("weighcheck.audit")


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    ENTRY_CREATED = "entry.create"
    ENTRY_UPDATED = "entry.update"
    ENTRY_DELETED = "entry.delete"
    ENTRY_BULK_UPDATED = "entry.bulk_update"
    ENTRY_BULK_DELETED = "entry.bulk_delete"

    SETTINGS_UPDATED = "settings.update"
    STATISTICS_RECALCULATED = "statistics.recalculate"

    PHOTOS_DELETED = "photos.delete"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_name: Optional[str] = None,
    resource: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """
    Append an event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of the worker performing the action
        actor_name: Username of the actor
        resource: What was acted upon, e.g. ``entry:42``
        details: Additional context as JSON

    Returns:
        Created AuditLog instance, or None if the write failed
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_name=actor_name,
        action=action,
        resource=resource,
        details=details,
    )

    try:
        db.add(audit_log)
        await db.commit()
        await db.refresh(audit_log)
    except Exception:
        logger.exception(
            "Audit log write failed",
            extra={"action": action, "actor_id": actor_id, "resource": resource},
        )
        await db.rollback()
        return None

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    skip: int = 0,
    limit: int = 100
) -> tuple[list[AuditLog], int]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        (audit logs most recent first, total matching count)
    """
    query = select(AuditLog)
    count_query = select(func.count(AuditLog.id))

    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)
        count_query = count_query.where(AuditLog.actor_id == actor_id)

    if action:
        query = query.where(AuditLog.action == action)
        count_query = count_query.where(AuditLog.action == action)

    query = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).offset(skip).limit(limit)

    result = await db.execute(query)
    total = (await db.execute(count_query)).scalar_one()
    return list(result.scalars().all()), total
