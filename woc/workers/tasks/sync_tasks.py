import structlog

from woc.core.exceptions import UpstreamError
from woc.db.database import create_worker_session_maker
from woc.services.sync_service import SyncService
from woc.workers.celery_app import celery_app
from woc.workers.tasks import run_async

logger = structlog.get_logger()


@celery_app.task(bind=True, max_retries=3)
def sync_project(self, project_id: int) -> dict:
    """Queue-driven variant of the on-demand project sync."""
    return run_async(_sync_project_async(self, project_id))


async def _sync_project_async(task, project_id: int) -> dict:
    async with create_worker_session_maker()() as db:
        try:
            result = await SyncService(db).sync_project(project_id)
            await db.commit()
        except UpstreamError as exc:
            await db.rollback()
            logger.error("Project sync failed", project_id=project_id, error=exc.message)
            raise task.retry(exc=exc, countdown=60 * (task.request.retries + 1))

    return {
        "status": "completed",
        "project_id": project_id,
        "created": result.created,
        "updated": result.updated,
        "skipped": result.skipped,
    }
