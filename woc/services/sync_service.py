from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from woc.core.exceptions import NotFoundError
from woc.db.models.base import utcnow
from woc.db.models.project import Project
from woc.db.models.pull_request import PullRequest
from woc.db.models.user import User
from woc.services.github_service import GitHubPullRequestSource, PullRequestSource, SourcePullRequest
from woc.services.user_stats_service import UserStatsService

logger = structlog.get_logger()

# Fields refreshed on every sync. Diff stats are frozen once a PR is validated.
_ALWAYS_SYNCED = ("status", "title", "html_url", "github_merged_at", "github_closed_at")
_UNVALIDATED_ONLY = ("additions", "deletions", "github_data")


@dataclass
class SyncResult:
    project_id: int
    created: int = 0
    updated: int = 0
    skipped: int = 0


def _source_values(item: SourcePullRequest) -> dict:
    return {
        "status": item.status,
        "title": item.title,
        "html_url": item.html_url,
        "github_merged_at": item.merged_at,
        "github_closed_at": item.closed_at,
        "additions": item.additions,
        "deletions": item.deletions,
        "github_data": item.raw,
    }


def _as_utc(value: Any) -> Any:
    # Some backends hand back naive UTC datetimes.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def apply_source_update(pr: PullRequest, item: SourcePullRequest) -> bool:
    """Copy upstream fields onto an existing pull request.

    Points and validation fields are never touched. Returns True if anything
    changed.
    """
    values = _source_values(item)
    fields = _ALWAYS_SYNCED if pr.is_validated else _ALWAYS_SYNCED + _UNVALIDATED_ONLY
    changed = False
    for name in fields:
        if _as_utc(getattr(pr, name)) != _as_utc(values[name]):
            setattr(pr, name, values[name])
            changed = True
    return changed


class SyncService:
    """Reconciles a project's pull requests with an external source."""

    def __init__(self, db: AsyncSession, source: PullRequestSource | None = None) -> None:
        self.db = db
        self.source = source or GitHubPullRequestSource()

    async def _users_by_login(self, logins: set[str]) -> dict[str, User]:
        if not logins:
            return {}
        result = await self.db.execute(
            select(User).where(func.lower(User.github_username).in_(logins))
        )
        return {user.github_username.lower(): user for user in result.scalars().all()}

    async def _existing_by_external_id(self, external_ids: list[int]) -> dict[int, PullRequest]:
        if not external_ids:
            return {}
        result = await self.db.execute(
            select(PullRequest).where(PullRequest.external_id.in_(external_ids))
        )
        return {pr.external_id: pr for pr in result.scalars().all()}

    async def sync_project(self, project_id: int, now: datetime | None = None) -> SyncResult:
        """Upsert a project's pull requests keyed by their upstream id.

        Everything is fetched before the first write, so an upstream failure
        leaves the store untouched. Authors without an account are skipped.
        """
        now = now or utcnow()
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        logger.info("Sync started", project_id=project_id)
        remote = await self.source.list_pull_requests(project)

        users = await self._users_by_login(
            {item.author_login.lower() for item in remote if item.author_login}
        )
        existing = await self._existing_by_external_id([item.external_id for item in remote])

        result = SyncResult(project_id=project_id)
        affected_users: set[int] = set()
        for item in remote:
            pr = existing.get(item.external_id)
            if pr is not None:
                if apply_source_update(pr, item):
                    result.updated += 1
                    affected_users.add(pr.user_id)
                continue

            user = users.get((item.author_login or "").lower())
            if user is None:
                result.skipped += 1
                continue

            pr = PullRequest(
                user_id=user.id,
                project_id=project.id,
                external_id=item.external_id,
                number=item.number,
                github_created_at=item.created_at,
                points=0,
                is_validated=False,
                **_source_values(item),
            )
            self.db.add(pr)
            existing[item.external_id] = pr
            result.created += 1
            affected_users.add(user.id)

        await self.db.flush()
        await UserStatsService(self.db).recompute_many(affected_users, now)
        project.last_synced_at = now
        await self.db.flush()

        logger.info(
            "Sync finished",
            project_id=project_id,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
        )
        return result
