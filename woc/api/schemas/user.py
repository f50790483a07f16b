from datetime import datetime

from pydantic import BaseModel

from woc.db.models.user import UserRole


class UserStats(BaseModel):
    total_prs: int
    merged_prs: int
    total_points: int


class WeeklyStats(BaseModel):
    points: int
    prs: int
    computed_at: datetime | None


class UserDetail(BaseModel):
    id: int
    name: str
    email: str
    github_username: str | None
    avatar_url: str | None
    role: UserRole
    stats: UserStats
    weekly_stats: WeeklyStats
    created_at: datetime
