"""
Audit log schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any, List


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_name: Optional[str]
    action: str
    resource: Optional[str]
    details: Optional[Dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
