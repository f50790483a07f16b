from datetime import datetime

from pydantic import BaseModel, Field

from woc.db.models.pull_request import PullRequestStatus


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    github_username: str | None

    model_config = {"from_attributes": True}


class ValidatorSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class ProjectSummary(BaseModel):
    id: int
    name: str
    github_repo_url: str

    model_config = {"from_attributes": True}


class ValidationInfo(BaseModel):
    is_validated: bool
    validated_by: ValidatorSummary | None = None
    validated_at: datetime | None = None


class GitHubData(BaseModel):
    created_at: datetime
    merged_at: datetime | None
    closed_at: datetime | None
    additions: int
    deletions: int


class PullRequestDetail(BaseModel):
    id: int
    external_id: int
    number: int
    title: str
    html_url: str | None
    status: PullRequestStatus
    points: int
    user: UserSummary | None = None
    project: ProjectSummary | None = None
    validation: ValidationInfo
    github_data: GitHubData


class PullRequestStats(BaseModel):
    total_points: int = 0
    pending_points: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    merged_count: int = 0
    open_count: int = 0
    closed_count: int = 0
    validated_count: int = 0


class PullRequestListResponse(BaseModel):
    items: list[PullRequestDetail]
    total: int
    page: int
    limit: int
    pages: int
    stats: PullRequestStats


class UserPullRequestListResponse(PullRequestListResponse):
    total_points: int


class RecentPullRequestsResponse(BaseModel):
    items: list[PullRequestDetail]
    results: int


class ValidationRequest(BaseModel):
    validator_id: int = Field(..., ge=1)
    decision: bool = True


class SyncResponse(BaseModel):
    project_id: int
    created: int
    updated: int
    skipped: int
