"""
Entry database model.

One worker-submitted weight-audit record with attached photo evidence.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from weighcheck.app.db.session import Base
from weighcheck.app.models.entry_enums import EntryStatus


class Entry(Base):
    """
    Weight audit entry.

    The receipt number is the business key: the UNIQUE constraint on it is
    what rejects a second submission for the same package.
    """
    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Business key
    receipt_number = Column(String(50), unique=True, nullable=False, index=True)

    # Ownership
    worker_id = Column(Integer, nullable=False, index=True)
    worker_name = Column(String(100), nullable=False)

    # Weights (kg)
    manifest_weight = Column(Float, nullable=False)
    measured_weight = Column(Float, nullable=False)
    discrepancy = Column(Float, nullable=False)

    # Review
    status = Column(Enum(EntryStatus), default=EntryStatus.PENDING, nullable=False, index=True)
    note = Column(String(500), nullable=True)

    # Evidence
    # Required at creation; an admin photo purge may clear it later
    photo_url_1 = Column(String(500), nullable=True)
    photo_url_2 = Column(String(500), nullable=True)

    # Capture metadata (lat/lon are 0 for manual locations)
    gps_latitude = Column(Float, nullable=True)
    gps_longitude = Column(Float, nullable=True)
    location_text = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    updated_by = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Entry(id={self.id}, receipt='{self.receipt_number}', worker_id={self.worker_id}, status='{self.status.value}')>"
