from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from sqlalchemy import ColumnElement, case, delete, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.scoring import ScoringBucketCreate
from woc.core.config import settings
from woc.core.exceptions import ConflictError
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.db.models.scoring import ScoringBucket

logger = structlog.get_logger()


@dataclass(frozen=True)
class Bucket:
    """A scoring threshold: merged PRs changing at least `min_lines` earn `points`."""

    min_lines: int
    points: int


class Scorable(Protocol):
    status: Any
    additions: int
    deletions: int


DEFAULT_BUCKETS: tuple[Bucket, ...] = tuple(
    Bucket(min_lines=min_lines, points=points) for min_lines, points in settings.scoring_buckets
)


def normalize_buckets(buckets: Iterable[Bucket | ScoringBucket]) -> tuple[Bucket, ...]:
    """Sort thresholds ascending and carry the running maximum of points.

    The result is a non-decreasing curve even if the configured table is not.
    """
    ordered = sorted(
        (Bucket(int(b.min_lines), max(int(b.points), 0)) for b in buckets),
        key=lambda b: b.min_lines,
    )
    curve: list[Bucket] = []
    best = 0
    for bucket in ordered:
        best = max(best, bucket.points)
        curve.append(Bucket(bucket.min_lines, best))
    return tuple(curve)


def score_diff(
    status: PullRequestStatus | str,
    additions: int,
    deletions: int,
    buckets: Sequence[Bucket] = DEFAULT_BUCKETS,
) -> int:
    """Points for a diff of the given size. Only merged pull requests score."""
    if PullRequestStatus(status) is not PullRequestStatus.MERGED:
        return 0

    churn = max(int(additions or 0), 0) + max(int(deletions or 0), 0)
    if churn == 0:
        return 0

    points = 0
    for bucket in normalize_buckets(buckets):
        if churn < bucket.min_lines:
            break
        points = bucket.points
    return points


def compute_points(pr: Scorable, buckets: Sequence[Bucket] = DEFAULT_BUCKETS) -> int:
    """Score a pull request from its status and diff stats."""
    return score_diff(pr.status, pr.additions, pr.deletions, buckets)


def pending_points_expression(buckets: Sequence[Bucket]) -> ColumnElement[int]:
    """SQL rendering of `compute_points` for summing points of unvalidated PRs."""
    curve = normalize_buckets(buckets)
    if not curve:
        return literal(0)

    churn = PullRequest.additions + PullRequest.deletions
    is_merged = PullRequest.status == PullRequestStatus.MERGED
    whens = [
        (is_merged & (churn >= max(bucket.min_lines, 1)), bucket.points)
        for bucket in reversed(curve)
    ]
    return case(*whens, else_=0)


class ScoringService:
    """Service for managing the scoring table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_all_buckets(self) -> list[ScoringBucket]:
        """Get the scoring table rows, initializing defaults if needed."""
        result = await self.db.execute(select(ScoringBucket).order_by(ScoringBucket.min_lines))
        rows = list(result.scalars().all())

        if not rows:
            rows = await self._initialize_defaults()

        return rows

    async def get_buckets(self) -> tuple[Bucket, ...]:
        """Get the scoring curve without seeding the table.

        Falls back to the configured defaults while the table is empty.
        """
        result = await self.db.execute(select(ScoringBucket))
        rows = result.scalars().all()
        return normalize_buckets(rows or DEFAULT_BUCKETS)

    async def _initialize_defaults(self) -> list[ScoringBucket]:
        """Initialize the default scoring table from settings."""
        rows = []
        for bucket in DEFAULT_BUCKETS:
            row = ScoringBucket(
                min_lines=bucket.min_lines,
                points=bucket.points,
                description=f"Merged PR changing at least {bucket.min_lines} lines",
            )
            self.db.add(row)
            rows.append(row)

        await self.db.flush()
        logger.info("Initialized default scoring table", buckets=len(rows))
        return rows

    async def update_buckets(self, buckets: list[ScoringBucketCreate]) -> list[ScoringBucket]:
        """Replace the scoring table.

        Already validated pull requests keep the points they were given.
        """
        thresholds = [b.min_lines for b in buckets]
        if len(thresholds) != len(set(thresholds)):
            raise ConflictError("Scoring table has duplicate min_lines thresholds")

        await self.db.execute(delete(ScoringBucket))

        rows = []
        for data in sorted(buckets, key=lambda b: b.min_lines):
            row = ScoringBucket(
                min_lines=data.min_lines,
                points=data.points,
                description=data.description,
            )
            self.db.add(row)
            rows.append(row)

        await self.db.flush()
        logger.info("Scoring table updated", buckets=len(rows))
        return rows
