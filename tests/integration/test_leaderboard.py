from datetime import timedelta

import pytest

from woc.core.exceptions import InvalidFilterError
from woc.services.leaderboard_service import LeaderboardService

pytestmark = pytest.mark.integration


class TestLeaderboard:
    """Tests for ranking users by confirmed points."""

    async def test_equal_points_earlier_first_merge_ranks_higher(
        self, db_session, factory, admin, now
    ) -> None:
        a = await factory.user("a")
        b = await factory.user("b")
        project = await factory.project()
        for points, days in ((40, 10), (30, 9), (30, 8)):
            await factory.pull_request(
                a, project, merged_at=now - timedelta(days=days), validated_by=admin, points=points
            )
        for days in (20, 19):
            await factory.pull_request(
                b, project, merged_at=now - timedelta(days=days), validated_by=admin, points=50
            )

        entries = await LeaderboardService(db_session).build_leaderboard(now=now)

        assert [(e.rank, e.user.github_username, e.points) for e in entries[:2]] == [
            (1, "b", 100),
            (2, "a", 100),
        ]
        assert entries[0].merged_count == 2
        assert entries[1].pr_count == 3

    async def test_overall_ranks_every_user(self, db_session, factory, admin, now) -> None:
        active = await factory.user("active")
        idle = await factory.user("idle")
        await factory.pull_request(active, await factory.project(), validated_by=admin, points=5)

        entries = await LeaderboardService(db_session).build_leaderboard(now=now)

        assert [e.user.id for e in entries] == [active.id, admin.id, idle.id]
        assert [e.rank for e in entries] == [1, 2, 3]
        assert entries[2].points == 0

    async def test_unvalidated_work_does_not_count(self, db_session, factory, admin, now) -> None:
        user = await factory.user()
        await factory.pull_request(user, await factory.project(), additions=5000)

        entries = await LeaderboardService(db_session).build_leaderboard(now=now)

        assert all(e.points == 0 for e in entries)

    async def test_weekly_window(self, db_session, factory, admin, now) -> None:
        old = await factory.user("old")
        fresh = await factory.user("fresh")
        project = await factory.project()
        await factory.pull_request(
            old, project, validated_by=admin, validated_at=now - timedelta(days=10), points=50
        )
        await factory.pull_request(
            fresh, project, validated_by=admin, validated_at=now - timedelta(days=1), points=10
        )
        service = LeaderboardService(db_session)

        weekly = await service.build_leaderboard("weekly", now=now)
        overall = await service.build_leaderboard("overall", now=now)

        assert [(e.user.id, e.points) for e in weekly] == [(fresh.id, 10)]
        assert [e.user.id for e in overall][:2] == [old.id, fresh.id]

    async def test_is_deterministic(self, db_session, factory, admin, now) -> None:
        project = await factory.project()
        for _ in range(4):
            user = await factory.user()
            await factory.pull_request(user, project, validated_by=admin, points=10)
        service = LeaderboardService(db_session)

        first = await service.build_leaderboard(now=now)
        second = await service.build_leaderboard(now=now)

        assert first == second
        assert [e.rank for e in first] == list(range(1, len(first) + 1))

    async def test_does_not_write_user_stats(self, db_session, factory, admin, now) -> None:
        user = await factory.user()
        await factory.pull_request(user, await factory.project(), validated_by=admin, points=20)

        entries = await LeaderboardService(db_session).build_leaderboard(now=now)

        assert entries[0].points == 20
        assert user.total_points == 0
        assert not db_session.dirty

    async def test_paging(self, db_session, factory, admin, now) -> None:
        project = await factory.project()
        for points in (50, 40, 30, 20):
            user = await factory.user()
            await factory.pull_request(user, project, validated_by=admin, points=points)

        page, total = await LeaderboardService(db_session).get_leaderboard(
            page=2, limit=2, now=now
        )

        assert total == 5
        assert [(e.rank, e.points) for e in page] == [(3, 30), (4, 20)]

    async def test_unknown_window(self, db_session) -> None:
        with pytest.raises(InvalidFilterError):
            await LeaderboardService(db_session).build_leaderboard("monthly")
