from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.user import UserDetail, UserStats, WeeklyStats
from woc.core.exceptions import NotFoundError
from woc.db.models.user import User


class UserService:
    """Service for reading user profiles and their cached stats."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user(self, user_id: int) -> UserDetail:
        """Get a user profile with the stats cached by the last recompute."""
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        return UserDetail(
            id=user.id,
            name=user.name,
            email=user.email,
            github_username=user.github_username,
            avatar_url=user.avatar_url,
            role=user.role,
            stats=UserStats(
                total_prs=user.total_prs,
                merged_prs=user.merged_prs,
                total_points=user.total_points,
            ),
            weekly_stats=WeeklyStats(
                points=user.weekly_points,
                prs=user.weekly_prs,
                computed_at=user.weekly_stats_at,
            ),
            created_at=user.created_at,
        )
