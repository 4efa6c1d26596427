"""
Setting database model.

Admin-configurable key/value settings (compensation rates live here).
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from weighcheck.app.db.session import Base


class Setting(Base):
    """
    Key/value setting row.

    Values are stored as text and typed by the settings repository.
    """
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(String(500), nullable=False)
    description = Column(String(500), nullable=True)

    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Setting(key='{self.key}', value='{self.value}')>"
