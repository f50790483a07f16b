from fastapi import APIRouter

from woc.api.routes.leaderboard import router as leaderboard_router
from woc.api.routes.pull_requests import router as pull_requests_router
from woc.api.routes.scoring import router as scoring_router
from woc.api.routes.users import router as users_router

router = APIRouter()

router.include_router(pull_requests_router, prefix="/pull-requests", tags=["pull-requests"])
router.include_router(leaderboard_router, prefix="/leaderboard", tags=["leaderboard"])
router.include_router(users_router, prefix="/users", tags=["users"])
router.include_router(scoring_router, prefix="/config", tags=["configuration"])
