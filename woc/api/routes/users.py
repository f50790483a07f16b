from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.user import UserDetail
from woc.db import get_db
from woc.services.user_service import UserService

router = APIRouter()


@router.get(
    "/{user_id}",
    response_model=UserDetail,
    summary="Get user profile",
)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
) -> UserDetail:
    """Get a user profile with cached overall and weekly stats."""
    service = UserService(db)
    return await service.get_user(user_id)
