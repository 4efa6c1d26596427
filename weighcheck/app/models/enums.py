"""
Worker roles enumeration.

Defines the role types carried in the auth context.
"""

import enum


class WorkerRole(str, enum.Enum):
    """
    Worker role enumeration.

    Roles:
        ADMIN: Reviews entries, manages settings and evidence storage
        WORKER: Field worker submitting weight entries (default role)
    """
    ADMIN = "ADMIN"
    WORKER = "WORKER"
