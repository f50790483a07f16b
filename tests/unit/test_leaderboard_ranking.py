from datetime import datetime, timedelta, timezone

import pytest

from woc.api.schemas.leaderboard import LeaderboardWindow
from woc.core.exceptions import InvalidFilterError
from woc.services.leaderboard_service import Standing, parse_window, rank_standings

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


def standing(user_id: int, points: int, first_merged_at: datetime | None = None) -> Standing:
    return Standing(
        user_id=user_id,
        points=points,
        pr_count=1,
        merged_count=1 if first_merged_at else 0,
        first_merged_at=first_merged_at,
    )


class TestRankStandings:
    """Tests for leaderboard ordering and rank assignment."""

    def test_orders_by_points_descending(self) -> None:
        ranked = rank_standings([standing(1, 10, T0), standing(2, 30, T0), standing(3, 20, T0)])
        assert [(rank, s.user_id) for rank, s in ranked] == [(1, 2), (2, 3), (3, 1)]

    def test_equal_points_earlier_first_merge_wins(self) -> None:
        a = standing(1, 100, T0 + timedelta(days=3))
        b = standing(2, 100, T0)
        ranked = rank_standings([a, b])
        assert [s.user_id for _, s in ranked] == [2, 1]

    def test_missing_first_merge_ranks_after_any_merge(self) -> None:
        ranked = rank_standings([standing(1, 0), standing(2, 0, T0)])
        assert [s.user_id for _, s in ranked] == [2, 1]

    def test_full_tie_falls_back_to_user_id(self) -> None:
        ranked = rank_standings([standing(9, 50, T0), standing(4, 50, T0), standing(6, 50, T0)])
        assert [s.user_id for _, s in ranked] == [4, 6, 9]

    def test_ranks_are_unique_and_contiguous(self) -> None:
        standings = [standing(i, 10 * (i % 3), T0) for i in range(1, 11)]
        ranks = [rank for rank, _ in rank_standings(standings)]
        assert ranks == list(range(1, 11))

    def test_input_order_does_not_matter(self) -> None:
        standings = [
            standing(1, 5, T0),
            standing(2, 5, T0 - timedelta(hours=1)),
            standing(3, 7),
            standing(4, 0),
        ]
        forward = [s.user_id for _, s in rank_standings(standings)]
        backward = [s.user_id for _, s in rank_standings(reversed(standings))]
        assert forward == backward == [3, 2, 1, 4]

    def test_empty(self) -> None:
        assert rank_standings([]) == []


class TestParseWindow:
    def test_known_windows(self) -> None:
        assert parse_window("weekly") is LeaderboardWindow.WEEKLY
        assert parse_window(LeaderboardWindow.OVERALL) is LeaderboardWindow.OVERALL

    def test_unknown_window(self) -> None:
        with pytest.raises(InvalidFilterError):
            parse_window("monthly")
