"""
Worker Statistics database model.

Derived per-worker aggregates, rebuilt from the entry ledger after every
entry mutation and after compensation settings change.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime
from sqlalchemy.sql import func
from weighcheck.app.db.session import Base


class WorkerStatistics(Base):
    """
    Worker statistics model.

    Nothing here is authoritative: every column can be recomputed from
    the entries table and the current compensation settings.
    """
    __tablename__ = "worker_statistics"

    worker_id = Column(Integer, primary_key=True, autoincrement=False)
    worker_name = Column(String(100), nullable=True)

    total_entries = Column(Integer, nullable=False, default=0)
    days_with_entries = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Float, nullable=False, default=0.0)

    # Figures for the local day of the last refresh
    daily_entries = Column(Integer, nullable=False, default=0)
    daily_earnings = Column(Float, nullable=False, default=0.0)

    level = Column(String(20), nullable=False, default="Beginner")
    avg_discrepancy = Column(Float, nullable=False, default=0.0)

    first_entry_at = Column(DateTime(timezone=True), nullable=True)
    last_entry_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<WorkerStatistics(worker_id={self.worker_id}, total_entries={self.total_entries}, level='{self.level}')>"
