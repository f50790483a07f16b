import structlog

from woc.db.database import create_worker_session_maker
from woc.services.user_stats_service import UserStatsService
from woc.workers.celery_app import celery_app
from woc.workers.tasks import run_async

logger = structlog.get_logger()


@celery_app.task
def recompute_user_stats(user_id: int) -> dict:
    """Rebuild one user's cached stats from their validated pull requests."""
    return run_async(_recompute_user_stats_async(user_id))


async def _recompute_user_stats_async(user_id: int) -> dict:
    async with create_worker_session_maker()() as db:
        user = await UserStatsService(db).recompute(user_id)
        await db.commit()
        return {
            "status": "completed",
            "user_id": user_id,
            "total_points": user.total_points,
        }


@celery_app.task
def recompute_all_user_stats() -> dict:
    """Repair the cached stats of every user."""
    return run_async(_recompute_all_user_stats_async())


async def _recompute_all_user_stats_async() -> dict:
    logger.info("Starting full user stats recompute")
    async with create_worker_session_maker()() as db:
        count = await UserStatsService(db).recompute_all()
        await db.commit()
    return {"status": "completed", "users_processed": count}
