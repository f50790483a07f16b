from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.leaderboard import LeaderboardEntry, LeaderboardUserInfo, LeaderboardWindow
from woc.core.config import settings
from woc.core.exceptions import InvalidFilterError
from woc.db.models.base import utcnow
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.db.models.user import User

logger = structlog.get_logger()


@dataclass
class Standing:
    """A user's confirmed totals inside a leaderboard window."""

    user_id: int
    points: int
    pr_count: int
    merged_count: int
    first_merged_at: datetime | None
    user: User | None = None


def _standing_key(standing: Standing) -> tuple:
    # Points descending, then earliest first merge (missing merges last), then id.
    first_merged = standing.first_merged_at
    return (
        -standing.points,
        first_merged is None,
        first_merged.timestamp() if first_merged is not None else 0.0,
        standing.user_id,
    )


def rank_standings(standings: Iterable[Standing]) -> list[tuple[int, Standing]]:
    """Order standings and assign ranks 1..N with no shared ranks."""
    ordered = sorted(standings, key=_standing_key)
    return list(enumerate(ordered, start=1))


def parse_window(window: LeaderboardWindow | str) -> LeaderboardWindow:
    try:
        return LeaderboardWindow(window)
    except ValueError:
        allowed = ", ".join(w.value for w in LeaderboardWindow)
        raise InvalidFilterError(f"window must be one of {allowed}, got {window!r}") from None


class LeaderboardService:
    """Read-only ranking of users by confirmed points.

    Rankings are recomputed from the pull request rows on every call; nothing
    is cached or written back.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _standings(self, window: LeaderboardWindow, now: datetime) -> list[Standing]:
        confirmed = and_(
            PullRequest.user_id == User.id,
            PullRequest.is_validated.is_(True),
        )
        if window is LeaderboardWindow.WEEKLY:
            window_start = now - timedelta(days=settings.weekly_window_days)
            confirmed = and_(confirmed, PullRequest.validated_at >= window_start)

        is_merged = PullRequest.status == PullRequestStatus.MERGED
        query = select(
            User,
            func.coalesce(func.sum(PullRequest.points), 0).label("points"),
            func.count(PullRequest.id).label("pr_count"),
            func.coalesce(func.sum(case((is_merged, 1), else_=0)), 0).label("merged_count"),
            func.min(
                case(
                    (
                        is_merged,
                        func.coalesce(PullRequest.github_merged_at, PullRequest.github_created_at),
                    ),
                )
            ).label("first_merged_at"),
        )
        # Overall ranks every user; weekly only those active in the window.
        if window is LeaderboardWindow.WEEKLY:
            query = query.join(PullRequest, confirmed)
        else:
            query = query.outerjoin(PullRequest, confirmed)

        result = await self.db.execute(query.group_by(User.id))
        return [
            Standing(
                user_id=user.id,
                points=int(points),
                pr_count=int(pr_count),
                merged_count=int(merged_count),
                first_merged_at=first_merged_at,
                user=user,
            )
            for user, points, pr_count, merged_count, first_merged_at in result.all()
        ]

    async def build_leaderboard(
        self,
        window: LeaderboardWindow | str = LeaderboardWindow.OVERALL,
        now: datetime | None = None,
    ) -> list[LeaderboardEntry]:
        """Rank users for the window; ties fall back to first merge, then user id."""
        window = parse_window(window)
        now = now or utcnow()
        standings = await self._standings(window, now)

        entries = []
        for rank, standing in rank_standings(standings):
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    user=LeaderboardUserInfo.model_validate(standing.user),
                    points=standing.points,
                    pr_count=standing.pr_count,
                    merged_count=standing.merged_count,
                    first_merged_at=standing.first_merged_at,
                )
            )

        logger.debug("Leaderboard built", window=window.value, entries=len(entries))
        return entries

    async def get_leaderboard(
        self,
        window: LeaderboardWindow | str = LeaderboardWindow.OVERALL,
        page: int = 1,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> tuple[list[LeaderboardEntry], int]:
        """Get one page of the leaderboard and the number of ranked users."""
        if page < 1:
            raise InvalidFilterError("page must be at least 1")
        limit = limit or settings.api_pagination_default_limit
        if limit < 1:
            raise InvalidFilterError("limit must be at least 1")
        limit = min(limit, settings.api_pagination_max_limit)

        entries = await self.build_leaderboard(window, now)
        offset = (page - 1) * limit
        return entries[offset : offset + limit], len(entries)
