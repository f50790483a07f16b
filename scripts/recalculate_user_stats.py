#!/usr/bin/env python
"""Rebuild every user's cached stats from validated pull requests."""

import asyncio

from woc.db.database import create_worker_session_maker
from woc.services.leaderboard_service import LeaderboardService
from woc.services.user_stats_service import UserStatsService


async def recalculate_all_user_stats() -> None:
    """Recompute cached stats, then print the top of the overall leaderboard."""
    print("=" * 60)
    print("RECALCULATING USER STATS")
    print("=" * 60)

    async with create_worker_session_maker()() as db:
        count = await UserStatsService(db).recompute_all()
        await db.commit()
        print(f"  Recomputed stats for {count} users")

        print("\nTop 10 contributors (overall):")
        print("-" * 60)
        print(f"{'Rank':<6}{'GitHub':<25}{'Points':<10}{'PRs':<8}{'Merged':<8}")
        print("-" * 60)

        entries, _ = await LeaderboardService(db).get_leaderboard("overall", page=1, limit=10)
        for entry in entries:
            print(
                f"{entry.rank:<6}"
                f"{entry.user.github_username or '-':<25}"
                f"{entry.points:<10}"
                f"{entry.pr_count:<8}"
                f"{entry.merged_count:<8}"
            )

        print("-" * 60)
        print("\nUser stats recalculation complete!")


if __name__ == "__main__":
    asyncio.run(recalculate_all_user_stats())
