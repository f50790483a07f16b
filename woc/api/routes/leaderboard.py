from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.leaderboard import LeaderboardResponse, LeaderboardWindow
from woc.core.config import settings
from woc.db import get_db
from woc.services.leaderboard_service import LeaderboardService

router = APIRouter()


@router.get(
    "",
    response_model=LeaderboardResponse,
    summary="Get the leaderboard",
)
async def get_leaderboard(
    window: LeaderboardWindow = Query(LeaderboardWindow.OVERALL),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
) -> LeaderboardResponse:
    """Rank users by confirmed points, all-time or over the trailing week."""
    service = LeaderboardService(db)
    entries, total = await service.get_leaderboard(window, page, limit)
    return LeaderboardResponse(
        window=window,
        entries=entries,
        total=total,
        page=page,
        limit=min(limit, settings.api_pagination_max_limit),
    )
