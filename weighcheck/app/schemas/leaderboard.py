"""
Leaderboard schemas.
"""

from pydantic import BaseModel
from typing import Optional, List
from weighcheck.app.models.entry_enums import LeaderboardWindow


class LeaderboardRow(BaseModel):
    rank: int
    worker_id: int
    worker_name: Optional[str]
    entries: int
    earnings: float
    level: Optional[str]

    class Config:
        from_attributes = True


class LeaderboardResponse(BaseModel):
    type: LeaderboardWindow
    leaderboard: List[LeaderboardRow]
    current_worker_rank: Optional[int]
    total_ranked: int
