from woc.db.models.base import Base
from woc.db.models.project import Project
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.db.models.scoring import ScoringBucket
from woc.db.models.user import User, UserRole

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Project",
    "PullRequest",
    "PullRequestStatus",
    "ScoringBucket",
]
