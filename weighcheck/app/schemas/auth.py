"""
Authentication context schema.

The core trusts the resolved context; it never verifies credentials itself.
"""

from pydantic import BaseModel, Field
from weighcheck.app.models.enums import WorkerRole


class CurrentWorker(BaseModel):
    """Resolved identity of the caller, decoded from the bearer token."""
    worker_id: int = Field(..., description="Worker ID")
    username: str = Field(..., description="Worker username")
    role: WorkerRole = Field(default=WorkerRole.WORKER, description="Worker role")

    @property
    def is_admin(self) -> bool:
        return self.role == WorkerRole.ADMIN
