from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from woc.api.schemas.pull_request import PullRequestDetail
from woc.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from woc.db.models.base import utcnow
from woc.db.models.pull_request import PullRequest, PullRequestStatus
from woc.db.models.user import User
from woc.services.pull_request_service import PullRequestService
from woc.services.scoring_service import ScoringService, compute_points
from woc.services.user_stats_service import UserStatsService

logger = structlog.get_logger()


class ValidationService:
    """Moves a pull request from unvalidated to validated.

    The pull request update is flushed before the owner's stats are
    re-aggregated, both inside the caller's transaction, so the recompute
    reads the new validation state and nothing is committed half-applied.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_for_update(self, pr_id: int) -> PullRequest:
        result = await self.db.execute(
            select(PullRequest)
            .where(PullRequest.id == pr_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        pr = result.scalar_one_or_none()
        if pr is None:
            raise NotFoundError(f"Pull request {pr_id} not found")
        return pr

    async def validate_pull_request(
        self,
        pr_id: int,
        validator_id: int,
        decision: bool = True,
        now: datetime | None = None,
    ) -> PullRequestDetail:
        """Apply a mentor/admin decision to a pull request.

        Validating twice is a no-op for the pull request; the owner's stats
        are still rebuilt, which repairs them if an earlier attempt stopped
        between the two steps.
        """
        now = now or utcnow()
        pr = await self._get_for_update(pr_id)

        validator = await self.db.get(User, validator_id)
        if validator is None:
            raise NotFoundError(f"User {validator_id} not found")
        if not validator.can_validate:
            raise PermissionDeniedError(
                f"User {validator_id} is not allowed to validate pull requests"
            )

        if not decision:
            if pr.is_validated:
                raise ConflictError(f"Pull request {pr_id} is already validated")
            logger.info("Validation declined", pr_id=pr_id, validator_id=validator_id)
            return await PullRequestService(self.db).get_pull_request(pr_id)

        # Only merged work is scored, and merged is final upstream.
        if not pr.is_validated and pr.status is not PullRequestStatus.MERGED:
            raise ConflictError(
                f"Pull request {pr_id} is {pr.status.value}; "
                "only merged pull requests can be validated"
            )

        if pr.is_validated:
            logger.info(
                "Pull request already validated",
                pr_id=pr_id,
                validated_by=pr.validated_by_id,
            )
        else:
            buckets = await ScoringService(self.db).get_buckets()
            pr.is_validated = True
            pr.validated_by_id = validator.id
            pr.validated_at = now
            pr.points = compute_points(pr, buckets)
            await self.db.flush()
            logger.info(
                "Pull request validated",
                pr_id=pr_id,
                validator_id=validator_id,
                points=pr.points,
            )

        await UserStatsService(self.db).recompute(pr.user_id, now)
        return await PullRequestService(self.db).get_pull_request(pr_id)
