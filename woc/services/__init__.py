from woc.services.github_service import GitHubPullRequestSource, GitHubService
from woc.services.leaderboard_service import LeaderboardService
from woc.services.pull_request_service import PullRequestFilter, PullRequestService
from woc.services.scoring_service import ScoringService, compute_points
from woc.services.sync_service import SyncService
from woc.services.user_service import UserService
from woc.services.user_stats_service import UserStatsService
from woc.services.validation_service import ValidationService

__all__ = [
    "GitHubPullRequestSource",
    "GitHubService",
    "LeaderboardService",
    "PullRequestFilter",
    "PullRequestService",
    "ScoringService",
    "compute_points",
    "SyncService",
    "UserService",
    "UserStatsService",
    "ValidationService",
]
