from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from math import ceil
from typing import Any

import structlog
from sqlalchemy import ColumnElement, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from woc.api.schemas.pull_request import (
    GitHubData,
    ProjectSummary,
    PullRequestDetail,
    PullRequestStats,
    UserSummary,
    ValidationInfo,
    ValidatorSummary,
)
from woc.core.config import settings
from woc.core.exceptions import InvalidFilterError, NotFoundError
from woc.db.models.project import Project
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.db.models.user import User
from woc.services.scoring_service import ScoringService, pending_points_expression

logger = structlog.get_logger()

DEFAULT_SORT = "-created_at"

SORT_COLUMNS = {
    "created_at": PullRequest.github_created_at,
    "merged_at": PullRequest.github_merged_at,
    "points": PullRequest.points,
}

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}


def _parse_bool(name: str, value: Any) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise InvalidFilterError(f"{name} must be a boolean, got {value!r}")


def _parse_id(name: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidFilterError(f"{name} must be an integer id, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise InvalidFilterError(f"{name} must be an integer id, got {value!r}") from None
    if parsed < 1:
        raise InvalidFilterError(f"{name} must be a positive id, got {value!r}")
    return parsed


def _parse_status(value: Any) -> PullRequestStatus | None:
    if value is None or value == "":
        return None
    try:
        return PullRequestStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in PullRequestStatus)
        raise InvalidFilterError(f"status must be one of {allowed}, got {value!r}") from None


@dataclass(frozen=True)
class PullRequestFilter:
    """Optional combination of status, owner, project and validation flag."""

    status: PullRequestStatus | None = None
    user_id: int | None = None
    project_id: int | None = None
    is_validated: bool | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "PullRequestFilter":
        """Build a filter from request parameters; unknown keys are ignored."""
        is_validated = params.get("isValidated", params.get("is_validated"))
        return cls(
            status=_parse_status(params.get("status")),
            user_id=_parse_id("user", params.get("user")),
            project_id=_parse_id("project", params.get("project")),
            is_validated=_parse_bool("isValidated", is_validated),
        )

    def scoped(self, **overrides: Any) -> "PullRequestFilter":
        return replace(self, **overrides)

    def clauses(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if self.status is not None:
            clauses.append(PullRequest.status == self.status)
        if self.user_id is not None:
            clauses.append(PullRequest.user_id == self.user_id)
        if self.project_id is not None:
            clauses.append(PullRequest.project_id == self.project_id)
        if self.is_validated is not None:
            clauses.append(PullRequest.is_validated.is_(self.is_validated))
        return clauses


def parse_sort(sort: str | None) -> list[ColumnElement[Any]]:
    """Translate a sort key such as ``-created_at`` into ORDER BY columns.

    Ties are broken by id in the same direction so paging is stable.
    """
    key = (sort or DEFAULT_SORT).strip()
    descending = key.startswith("-")
    column = SORT_COLUMNS.get(key.lstrip("-+"))
    if column is None:
        allowed = ", ".join(sorted(SORT_COLUMNS))
        raise InvalidFilterError(f"sort must be one of {allowed} (optionally prefixed by -)")
    if descending:
        return [column.desc(), PullRequest.id.desc()]
    return [column.asc(), PullRequest.id.asc()]


@dataclass
class AggregateResult:
    items: list[PullRequestDetail]
    total: int
    page: int
    limit: int
    stats: PullRequestStats = field(default_factory=PullRequestStats)

    @property
    def pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0


def to_detail(pr: PullRequest) -> PullRequestDetail:
    """Join a pull request with the display fields of its user, project and validator."""
    return PullRequestDetail(
        id=pr.id,
        external_id=pr.external_id,
        number=pr.number,
        title=pr.title,
        html_url=pr.html_url,
        status=pr.status,
        points=pr.points,
        user=UserSummary.model_validate(pr.user) if pr.user else None,
        project=ProjectSummary.model_validate(pr.project) if pr.project else None,
        validation=ValidationInfo(
            is_validated=pr.is_validated,
            validated_by=(
                ValidatorSummary.model_validate(pr.validated_by) if pr.validated_by else None
            ),
            validated_at=pr.validated_at,
        ),
        github_data=GitHubData(
            created_at=pr.github_created_at,
            merged_at=pr.github_merged_at,
            closed_at=pr.github_closed_at,
            additions=pr.additions,
            deletions=pr.deletions,
        ),
    )


def _joined_query():
    return select(PullRequest).options(
        joinedload(PullRequest.user),
        joinedload(PullRequest.project),
        joinedload(PullRequest.validated_by),
    )


def _count_where(condition: ColumnElement[bool]) -> ColumnElement[int]:
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class PullRequestService:
    """Filtered listing and aggregation over pull requests."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _clamp_limit(self, limit: int) -> int:
        if limit < 1:
            raise InvalidFilterError("limit must be at least 1")
        return min(limit, settings.api_pagination_max_limit)

    async def compute_stats(
        self,
        clauses: list[ColumnElement[bool]],
    ) -> tuple[int, PullRequestStats]:
        """Count and sum the whole filtered set in a single statement."""
        buckets = await ScoringService(self.db).get_buckets()
        confirmed = PullRequest.is_validated.is_(True)
        pending = pending_points_expression(buckets)

        result = await self.db.execute(
            select(
                func.count(PullRequest.id).label("total"),
                func.coalesce(
                    func.sum(case((confirmed, PullRequest.points), else_=0)), 0
                ).label("total_points"),
                func.coalesce(
                    func.sum(case((PullRequest.is_validated.is_(False), pending), else_=0)), 0
                ).label("pending_points"),
                func.coalesce(func.sum(PullRequest.additions), 0).label("total_additions"),
                func.coalesce(func.sum(PullRequest.deletions), 0).label("total_deletions"),
                _count_where(PullRequest.status == PullRequestStatus.MERGED).label("merged"),
                _count_where(PullRequest.status == PullRequestStatus.OPEN).label("open"),
                _count_where(PullRequest.status == PullRequestStatus.CLOSED).label("closed"),
                _count_where(confirmed).label("validated"),
            ).where(*clauses)
        )
        row = result.one()

        stats = PullRequestStats(
            total_points=int(row.total_points),
            pending_points=int(row.pending_points),
            total_additions=int(row.total_additions),
            total_deletions=int(row.total_deletions),
            merged_count=int(row.merged),
            open_count=int(row.open),
            closed_count=int(row.closed),
            validated_count=int(row.validated),
        )
        return int(row.total), stats

    async def aggregate(
        self,
        pr_filter: PullRequestFilter | None = None,
        page: int = 1,
        limit: int | None = None,
        sort: str | None = None,
    ) -> AggregateResult:
        """Return one page of matching pull requests with totals over the full set.

        A page past the end yields no items; `total` and `stats` still describe
        every matching pull request.
        """
        pr_filter = pr_filter or PullRequestFilter()
        if page < 1:
            raise InvalidFilterError("page must be at least 1")
        limit = self._clamp_limit(limit or settings.api_pagination_default_limit)
        order_by = parse_sort(sort)
        clauses = pr_filter.clauses()

        total, stats = await self.compute_stats(clauses)

        items: list[PullRequestDetail] = []
        offset = (page - 1) * limit
        if offset < total:
            result = await self.db.execute(
                _joined_query().where(*clauses).order_by(*order_by).offset(offset).limit(limit)
            )
            items = [to_detail(pr) for pr in result.scalars().all()]

        return AggregateResult(items=items, total=total, page=page, limit=limit, stats=stats)

    async def list_pull_requests(
        self,
        pr_filter: PullRequestFilter | None = None,
        page: int = 1,
        limit: int | None = None,
        sort: str | None = None,
    ) -> AggregateResult:
        """General listing with stats over the filtered set."""
        return await self.aggregate(pr_filter, page, limit, sort)

    async def get_pull_request(self, pr_id: int) -> PullRequestDetail:
        """Get a single pull request with its user, project and validator."""
        result = await self.db.execute(
            _joined_query()
            .where(PullRequest.id == pr_id)
            .execution_options(populate_existing=True)
        )
        pr = result.scalar_one_or_none()
        if pr is None:
            raise NotFoundError(f"Pull request {pr_id} not found")
        return to_detail(pr)

    async def confirmed_points(self, user_id: int) -> int:
        """Sum of points over a user's validated pull requests."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(PullRequest.points), 0)).where(
                PullRequest.user_id == user_id,
                PullRequest.is_validated.is_(True),
            )
        )
        return int(result.scalar_one())

    async def list_user_pull_requests(
        self,
        user_id: int,
        pr_filter: PullRequestFilter | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[AggregateResult, int]:
        """List a user's pull requests plus the user's confirmed point total."""
        if await self.db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        scoped = (pr_filter or PullRequestFilter()).scoped(user_id=user_id)
        result = await self.aggregate(scoped, page, limit)
        total_points = await self.confirmed_points(user_id)
        return result, total_points

    async def list_project_pull_requests(
        self,
        project_id: int,
        pr_filter: PullRequestFilter | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> AggregateResult:
        """List a project's pull requests with the project stats block."""
        if await self.db.get(Project, project_id) is None:
            raise NotFoundError(f"Project {project_id} not found")

        scoped = (pr_filter or PullRequestFilter()).scoped(project_id=project_id)
        return await self.aggregate(scoped, page, limit)

    async def list_recent_pull_requests(
        self,
        limit: int | None = None,
        pr_filter: PullRequestFilter | None = None,
    ) -> list[PullRequestDetail]:
        """Most recently opened pull requests first, without paging metadata."""
        limit = self._clamp_limit(limit or settings.api_pagination_default_limit)
        clauses = (pr_filter or PullRequestFilter()).clauses()
        result = await self.db.execute(
            _joined_query().where(*clauses).order_by(*parse_sort(DEFAULT_SORT)).limit(limit)
        )
        return [to_detail(pr) for pr in result.scalars().all()]
