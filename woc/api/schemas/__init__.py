from woc.api.schemas.leaderboard import (
    LeaderboardEntry,
    LeaderboardResponse,
    LeaderboardWindow,
)
from woc.api.schemas.pull_request import (
    PullRequestDetail,
    PullRequestListResponse,
    PullRequestStats,
    RecentPullRequestsResponse,
    SyncResponse,
    UserPullRequestListResponse,
    ValidationRequest,
)
from woc.api.schemas.scoring import ScoringBucketCreate, ScoringBucketResponse
from woc.api.schemas.user import UserDetail

__all__ = [
    "LeaderboardEntry",
    "LeaderboardResponse",
    "LeaderboardWindow",
    "PullRequestDetail",
    "PullRequestListResponse",
    "PullRequestStats",
    "RecentPullRequestsResponse",
    "SyncResponse",
    "UserPullRequestListResponse",
    "ValidationRequest",
    "ScoringBucketCreate",
    "ScoringBucketResponse",
    "UserDetail",
]
