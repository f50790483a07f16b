from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.scoring import ScoringBucketCreate, ScoringBucketResponse
from woc.db import get_db
from woc.services.scoring_service import ScoringService

router = APIRouter()


@router.get(
    "/scoring",
    response_model=list[ScoringBucketResponse],
    summary="Get the scoring table",
)
async def get_scoring_buckets(
    db: AsyncSession = Depends(get_db),
) -> list[ScoringBucketResponse]:
    """Get the line-count thresholds used to score merged pull requests."""
    service = ScoringService(db)
    buckets = await service.get_all_buckets()
    return [ScoringBucketResponse.model_validate(b) for b in buckets]


@router.put(
    "/scoring",
    response_model=list[ScoringBucketResponse],
    summary="Replace the scoring table",
)
async def update_scoring_buckets(
    buckets: list[ScoringBucketCreate],
    db: AsyncSession = Depends(get_db),
) -> list[ScoringBucketResponse]:
    """Replace the scoring table. Applies to pull requests validated afterwards."""
    service = ScoringService(db)
    updated = await service.update_buckets(buckets)
    return [ScoringBucketResponse.model_validate(b) for b in updated]
