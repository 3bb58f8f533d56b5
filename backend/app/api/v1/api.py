from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    bulk_schedule,
    commits,
    contributions,
    cron,
    github_sync,
    repositories,
    scheduled_commits,
)

api_router = APIRouter()
api_router.include_router(bulk_schedule.router, prefix="/github", tags=["bulk-schedule"])
api_router.include_router(github_sync.router, prefix="/github", tags=["sync"])
api_router.include_router(commits.router, prefix="/commits", tags=["commits"])
api_router.include_router(scheduled_commits.router, prefix="/scheduled-commits", tags=["scheduled-commits"])
api_router.include_router(contributions.router, prefix="/contributions", tags=["contributions"])
api_router.include_router(repositories.router, prefix="/repositories", tags=["repositories"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(auth.router, tags=["auth"])
