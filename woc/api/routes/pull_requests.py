from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.pull_request import (
    PullRequestDetail,
    PullRequestListResponse,
    RecentPullRequestsResponse,
    SyncResponse,
    UserPullRequestListResponse,
    ValidationRequest,
)
from woc.db import get_db
from woc.services.pull_request_service import PullRequestFilter, PullRequestService
from woc.services.sync_service import SyncService
from woc.services.validation_service import ValidationService

router = APIRouter()


def _filter_params(
    status: str | None = Query(None, description="open, merged or closed"),
    user: str | None = Query(None, description="Owner user id"),
    project: str | None = Query(None, description="Project id"),
    is_validated: str | None = Query(None, alias="isValidated"),
) -> PullRequestFilter:
    return PullRequestFilter.from_params(
        {
            "status": status,
            "user": user,
            "project": project,
            "isValidated": is_validated,
        }
    )


@router.get(
    "",
    response_model=PullRequestListResponse,
    summary="List pull requests",
)
async def list_pull_requests(
    pr_filter: PullRequestFilter = Depends(_filter_params),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sort: str | None = Query(None, description="e.g. -created_at, points"),
    db: AsyncSession = Depends(get_db),
) -> PullRequestListResponse:
    """List pull requests with stats computed over the whole filtered set."""
    service = PullRequestService(db)
    result = await service.list_pull_requests(pr_filter, page, limit, sort)
    return PullRequestListResponse(
        items=result.items,
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
        stats=result.stats,
    )


@router.get(
    "/recent",
    response_model=RecentPullRequestsResponse,
    summary="Get recent pull requests",
)
async def list_recent_pull_requests(
    pr_filter: PullRequestFilter = Depends(_filter_params),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
) -> RecentPullRequestsResponse:
    """Most recently opened pull requests first."""
    service = PullRequestService(db)
    items = await service.list_recent_pull_requests(limit, pr_filter)
    return RecentPullRequestsResponse(items=items, results=len(items))


@router.get(
    "/user/{user_id}",
    response_model=UserPullRequestListResponse,
    summary="Get a user's pull requests",
)
async def list_user_pull_requests(
    user_id: int,
    pr_filter: PullRequestFilter = Depends(_filter_params),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
) -> UserPullRequestListResponse:
    """List a user's pull requests along with the user's confirmed points."""
    service = PullRequestService(db)
    result, total_points = await service.list_user_pull_requests(user_id, pr_filter, page, limit)
    return UserPullRequestListResponse(
        items=result.items,
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
        stats=result.stats,
        total_points=total_points,
    )


@router.get(
    "/project/{project_id}",
    response_model=PullRequestListResponse,
    summary="Get a project's pull requests",
)
async def list_project_pull_requests(
    project_id: int,
    pr_filter: PullRequestFilter = Depends(_filter_params),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
) -> PullRequestListResponse:
    """List a project's pull requests with the project stats block."""
    service = PullRequestService(db)
    result = await service.list_project_pull_requests(project_id, pr_filter, page, limit)
    return PullRequestListResponse(
        items=result.items,
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
        stats=result.stats,
    )


@router.post(
    "/sync/{project_id}",
    response_model=SyncResponse,
    summary="Sync pull requests for a project",
)
async def sync_pull_requests(
    project_id: int,
    db: AsyncSession = Depends(get_db),
) -> SyncResponse:
    """Upsert a project's pull requests from GitHub, keeping validation state."""
    service = SyncService(db)
    result = await service.sync_project(project_id)
    return SyncResponse(
        project_id=result.project_id,
        created=result.created,
        updated=result.updated,
        skipped=result.skipped,
    )


@router.get(
    "/{pr_id}",
    response_model=PullRequestDetail,
    summary="Get a pull request",
)
async def get_pull_request(
    pr_id: int,
    db: AsyncSession = Depends(get_db),
) -> PullRequestDetail:
    """Get a single pull request with user, project and validator details."""
    service = PullRequestService(db)
    return await service.get_pull_request(pr_id)


@router.put(
    "/{pr_id}/validate",
    response_model=PullRequestDetail,
    summary="Validate a pull request",
)
async def validate_pull_request(
    pr_id: int,
    body: ValidationRequest,
    db: AsyncSession = Depends(get_db),
) -> PullRequestDetail:
    """Mark a pull request validated and refresh its owner's stats."""
    service = ValidationService(db)
    return await service.validate_pull_request(pr_id, body.validator_id, body.decision)
