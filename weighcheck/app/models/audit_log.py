"""
Audit Log Database Model.

Append-only trail of entry, evidence and settings actions.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from weighcheck.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Rows are only ever inserted. Events logged:
    - entry.create / entry.update / entry.delete
    - entry.bulk_update / entry.bulk_delete (with affected id sets and snapshots)
    - settings.update
    - photos.delete
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_name = Column(String(100), nullable=True)

    # What action was performed, on what
    action = Column(String(100), nullable=False, index=True)
    resource = Column(String(200), nullable=True)

    # Additional context (JSON for flexibility)
    details = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_name}, resource={self.resource})>"
