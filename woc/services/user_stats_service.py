from collections.abc import Iterable
from datetime import datetime, timedelta

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from woc.core.config import settings
from woc.core.exceptions import NotFoundError
from woc.db.models.base import utcnow
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.db.models.user import User

logger = structlog.get_logger()


class UserStatsService:
    """Maintains the cached stats on User as a view over validated pull requests.

    Stats are always rebuilt from the pull request rows, never patched with
    deltas, so running a recompute twice or after a missed update converges
    to the same values.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _lock_user(self, user_id: int) -> User:
        # Row lock serializes concurrent recomputes for the same user.
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def recompute(self, user_id: int, now: datetime | None = None) -> User:
        """Rebuild a user's totals and weekly snapshot from committed PR state."""
        now = now or utcnow()
        user = await self._lock_user(user_id)
        confirmed = (PullRequest.user_id == user_id, PullRequest.is_validated.is_(True))

        result = await self.db.execute(
            select(
                func.count(PullRequest.id).label("total_prs"),
                func.coalesce(
                    func.sum(case((PullRequest.status == PullRequestStatus.MERGED, 1), else_=0)),
                    0,
                ).label("merged_prs"),
                func.coalesce(func.sum(PullRequest.points), 0).label("total_points"),
            ).where(*confirmed)
        )
        totals = result.one()

        window_start = now - timedelta(days=settings.weekly_window_days)
        result = await self.db.execute(
            select(
                func.count(PullRequest.id).label("prs"),
                func.coalesce(func.sum(PullRequest.points), 0).label("points"),
            ).where(*confirmed, PullRequest.validated_at >= window_start)
        )
        weekly = result.one()

        user.total_prs = int(totals.total_prs)
        user.merged_prs = int(totals.merged_prs)
        user.total_points = int(totals.total_points)
        user.weekly_prs = int(weekly.prs)
        user.weekly_points = int(weekly.points)
        user.weekly_stats_at = now
        await self.db.flush()

        logger.info(
            "User stats recomputed",
            user_id=user_id,
            total_prs=user.total_prs,
            merged_prs=user.merged_prs,
            total_points=user.total_points,
            weekly_points=user.weekly_points,
        )
        return user

    async def recompute_many(
        self,
        user_ids: Iterable[int],
        now: datetime | None = None,
    ) -> int:
        """Recompute several users in id order so row locks are taken consistently."""
        now = now or utcnow()
        count = 0
        for user_id in sorted(set(user_ids)):
            await self.recompute(user_id, now)
            count += 1
        return count

    async def recompute_all(self, now: datetime | None = None) -> int:
        """Repair the cached stats of every user."""
        result = await self.db.execute(select(User.id))
        user_ids = list(result.scalars().all())
        count = await self.recompute_many(user_ids, now)
        logger.info("Recomputed stats for all users", users=count)
        return count
