from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class LeaderboardWindow(str, Enum):
    OVERALL = "overall"
    WEEKLY = "weekly"


class LeaderboardUserInfo(BaseModel):
    id: int
    name: str
    github_username: str | None
    avatar_url: str | None

    model_config = {"from_attributes": True}


class LeaderboardEntry(BaseModel):
    rank: int
    user: LeaderboardUserInfo
    points: int
    pr_count: int
    merged_count: int
    first_merged_at: datetime | None

    model_config = {"from_attributes": True}


class LeaderboardResponse(BaseModel):
    window: LeaderboardWindow
    entries: list[LeaderboardEntry]
    total: int
    page: int
    limit: int
