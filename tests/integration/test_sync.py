from datetime import timedelta

import pytest
from sqlalchemy import func, select

from woc.core.exceptions import ConflictError, NotFoundError, UpstreamError
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.services.github_service import SourcePullRequest
from woc.services.sync_service import SyncService
from woc.services.validation_service import ValidationService

pytestmark = pytest.mark.integration


class FakeSource:
    """In-memory pull request source."""

    def __init__(self, items=None, error: Exception | None = None) -> None:
        self.items = list(items or [])
        self.error = error
        self.calls = 0

    async def list_pull_requests(self, project):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.items)


def remote(external_id: int, login: str | None, now, **overrides) -> SourcePullRequest:
    values = {
        "external_id": external_id,
        "number": external_id % 1000,
        "title": f"Remote {external_id}",
        "html_url": f"https://github.com/dsc/site/pull/{external_id}",
        "author_login": login,
        "status": PullRequestStatus.MERGED,
        "created_at": now - timedelta(days=3),
        "merged_at": now - timedelta(days=2),
        "closed_at": now - timedelta(days=2),
        "additions": 80,
        "deletions": 20,
        "raw": {"labels": []},
    }
    values.update(overrides)
    return SourcePullRequest(**values)


async def count_pull_requests(db_session) -> int:
    return (await db_session.execute(select(func.count(PullRequest.id)))).scalar_one()


class TestSyncProject:
    """Tests for reconciling a project with its upstream pull requests."""

    async def test_creates_pull_requests_for_known_authors(self, db_session, factory, now) -> None:
        user = await factory.user("Octocat")
        project = await factory.project("site")
        source = FakeSource(
            [remote(5001, "octocat", now), remote(5002, "stranger", now), remote(5003, None, now)]
        )

        result = await SyncService(db_session, source).sync_project(project.id, now=now)

        assert (result.created, result.updated, result.skipped) == (1, 0, 2)
        pr = (await db_session.execute(select(PullRequest))).scalar_one()
        assert pr.user_id == user.id
        assert pr.external_id == 5001
        assert pr.points == 0
        assert pr.is_validated is False
        assert project.last_synced_at is not None

    async def test_resync_is_a_no_op(self, db_session, factory, now) -> None:
        await factory.user("octocat")
        project = await factory.project()
        source = FakeSource([remote(5001, "octocat", now), remote(5002, "octocat", now)])
        service = SyncService(db_session, source)

        await service.sync_project(project.id, now=now)
        again = await service.sync_project(project.id, now=now)

        assert (again.created, again.updated, again.skipped) == (0, 0, 0)
        assert await count_pull_requests(db_session) == 2

    async def test_updates_unvalidated_pull_requests(self, db_session, factory, now) -> None:
        await factory.user("octocat")
        project = await factory.project()
        service = SyncService(
            db_session,
            FakeSource([remote(5001, "octocat", now, status=PullRequestStatus.OPEN, merged_at=None)]),
        )
        await service.sync_project(project.id, now=now)

        service.source = FakeSource([remote(5001, "octocat", now, additions=300)])
        result = await service.sync_project(project.id, now=now)

        pr = (await db_session.execute(select(PullRequest))).scalar_one()
        assert result.updated == 1
        assert pr.status is PullRequestStatus.MERGED
        assert pr.additions == 300
        assert pr.points == 0

    async def test_validated_pull_requests_keep_points_and_diff(
        self, db_session, factory, admin, now
    ) -> None:
        user = await factory.user("octocat")
        project = await factory.project()
        service = SyncService(db_session, FakeSource([remote(5001, "octocat", now)]))
        await service.sync_project(project.id, now=now)
        pr = (await db_session.execute(select(PullRequest))).scalar_one()
        await ValidationService(db_session).validate_pull_request(pr.id, admin.id, now=now)
        points = pr.points

        service.source = FakeSource(
            [remote(5001, "octocat", now, additions=5000, deletions=900, title="Renamed")]
        )
        await service.sync_project(project.id, now=now)

        assert pr.title == "Renamed"
        assert (pr.additions, pr.deletions) == (80, 20)
        assert pr.is_validated is True
        assert pr.points == points
        assert user.total_points == points

    async def test_open_pull_request_is_scored_once_merged(
        self, db_session, factory, admin, now
    ) -> None:
        user = await factory.user("octocat")
        project = await factory.project()
        opened = remote(
            5001,
            "octocat",
            now,
            status=PullRequestStatus.OPEN,
            merged_at=None,
            closed_at=None,
            additions=500,
            deletions=10,
        )
        service = SyncService(db_session, FakeSource([opened]))
        await service.sync_project(project.id, now=now)
        pr = (await db_session.execute(select(PullRequest))).scalar_one()
        validation = ValidationService(db_session)

        with pytest.raises(ConflictError):
            await validation.validate_pull_request(pr.id, admin.id, now=now)

        service.source = FakeSource([remote(5001, "octocat", now, additions=500, deletions=10)])
        await service.sync_project(project.id, now=now)
        await validation.validate_pull_request(pr.id, admin.id, now=now)

        assert pr.status is PullRequestStatus.MERGED
        assert pr.points == 35
        assert user.merged_prs == 1
        assert user.total_points == 35

    async def test_upstream_failure_writes_nothing(self, db_session, factory, now) -> None:
        await factory.user("octocat")
        project = await factory.project()
        source = FakeSource(error=UpstreamError("rate limited"))

        with pytest.raises(UpstreamError):
            await SyncService(db_session, source).sync_project(project.id, now=now)

        assert await count_pull_requests(db_session) == 0
        assert project.last_synced_at is None

    async def test_recomputes_affected_users(self, db_session, factory, now) -> None:
        user = await factory.user("octocat")
        project = await factory.project()

        await SyncService(db_session, FakeSource([remote(5001, "octocat", now)])).sync_project(
            project.id, now=now
        )

        assert user.weekly_stats_at is not None
        assert user.total_points == 0

    async def test_unknown_project(self, db_session) -> None:
        source = FakeSource()

        with pytest.raises(NotFoundError):
            await SyncService(db_session, source).sync_project(404)
        assert source.calls == 0
