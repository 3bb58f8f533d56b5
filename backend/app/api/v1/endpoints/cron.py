"""Externally triggered sweep of due scheduled commits."""

import logging
from hmac import compare_digest
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.scheduler import compute_next_runs, is_sweep_running
from app.schemas.scheduled_commit import SweepResponse, SweepStatus
from app.services.sweep_service import ScheduledCommitSweeper
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None)
) -> None:
    """Accept the cron secret as a Bearer token or as the `token` query parameter."""
    if not settings.cron_secret:
        log.error("Cron endpoint called but CRON_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret is not configured"
        )

    provided = token
    if authorization and authorization.startswith("Bearer "):
        provided = authorization[len("Bearer "):]

    if not provided or not compare_digest(provided, settings.cron_secret):
        log.warning("Cron endpoint called with an invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post("/process-scheduled-commits", response_model=SweepResponse, dependencies=[Depends(verify_cron_secret)])
async def process_scheduled_commits(
    http_request: Request,
    db: Session = Depends(get_db)
):
    """Execute every pending scheduled commit whose time has come."""
    summary = await ScheduledCommitSweeper(db).run()

    if summary["processed"]:
        create_audit_log(
            db=db,
            request=http_request,
            action="sweep_completed",
            entity_type="scheduled_commit",
            user="cron",
            details=summary
        )

    return SweepResponse(
        processed=summary["processed"],
        results=summary["results"],
        message=f"Processed {summary['processed']} scheduled commits"
    )


@router.get("/status", response_model=SweepStatus)
async def sweep_status():
    """In-process sweep configuration and its next run times."""
    return SweepStatus(
        enabled=settings.sweep_enabled,
        cron=settings.sweep_cron,
        running=is_sweep_running(),
        next_runs=compute_next_runs(settings.sweep_cron) if settings.sweep_enabled else []
    )
