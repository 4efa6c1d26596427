"""
Security guards for role-based and ownership-based access control.
"""

from fastapi import Depends
from weighcheck.app.core.dependencies import get_current_worker
from weighcheck.app.core.exceptions import InsufficientPermissionsError
from weighcheck.app.schemas.auth import CurrentWorker


def require_admin(current_worker: CurrentWorker = Depends(get_current_worker)) -> CurrentWorker:
    """
    Dependency for admin-only endpoints.

    Usage:
        @router.post("/entries/bulk-delete")
        async def bulk_delete(admin: CurrentWorker = Depends(require_admin)):
            ...

    Raises:
        InsufficientPermissionsError if the caller is not an admin
    """
    if not current_worker.is_admin:
        raise InsufficientPermissionsError("Admin access required")

    return current_worker


def verify_ownership(resource_owner_id: int, current_worker: CurrentWorker) -> bool:
    """
    Verify that the current worker owns the resource.

    Admins can access everything; workers only their own resources.
    """
    if current_worker.is_admin:
        return True

    return current_worker.worker_id == resource_owner_id


class OwnershipGuard:
    """
    Class-based ownership guard for entry access.

    Usage:
        ownership_guard = OwnershipGuard()
        ownership_guard.enforce(entry.worker_id, current_worker, "entry")
    """

    def enforce(
        self,
        resource_owner_id: int,
        current_worker: CurrentWorker,
        resource_name: str = "resource"
    ):
        """
        Enforce ownership validation.

        Raises:
            InsufficientPermissionsError if ownership check fails
        """
        if not verify_ownership(resource_owner_id, current_worker):
            raise InsufficientPermissionsError(
                f"Access denied. You do not have permission to access this {resource_name}.",
                details={"resource": resource_name},
            )

    def filter_by_ownership(self, current_worker: CurrentWorker):
        """
        Get the worker_id to filter queries by.

        Returns None for admins (no filtering), the caller's id otherwise.
        """
        if current_worker.is_admin:
            return None

        return current_worker.worker_id
