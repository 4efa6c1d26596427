"""
Entry Status Enumeration.
"""

import enum


class EntryStatus(str, enum.Enum):
    """
    Entry review status.

    Status flow:
        PENDING → APPROVED | REJECTED (admin review, reversible by an admin)
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaderboardWindow(str, enum.Enum):
    """Time window a leaderboard is computed over."""
    DAILY = "daily"
    ALLTIME = "alltime"
