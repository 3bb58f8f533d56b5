"""Bulk scheduling of commits over a date range."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.auth import get_current_active_user
from app.config import settings
from app.connectors.github_connector import GitHubConnector
from app.database import get_db
from app.dependencies import get_github_connector
from app.models.user import User
from app.schemas.bulk import BulkScheduleRequest, BulkScheduleResponse
from app.services.commit_dispatcher import CommitDispatcher
from app.services.date_expander import DateRangeTooLargeError, expand_and_partition
from app.services.repository_service import ensure_repository
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/bulk-schedule", response_model=BulkScheduleResponse)
async def bulk_schedule(
    http_request: Request,
    request: BulkScheduleRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    db: Session = Depends(get_db)
):
    """
    Expand the date range, schedule commits for future dates and, for
    operation 'fix', create backdated commits for past dates right away.
    """
    now = datetime.now()
    try:
        past_dates, future_dates = expand_and_partition(
            request.start_date, request.end_date, request.frequency, limit=settings.max_bulk_commits, now=now
        )
    except DateRangeTooLargeError as e:
        log.warning(f"Bulk request of {current_user.github_username} rejected: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not past_dates and not future_dates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No dates match the given range and frequency"
        )

    try:
        repository = ensure_repository(db, current_user, request.repo_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    log.info(
        f"Bulk {request.operation_type} on {repository.name} for {current_user.github_username}: "
        f"{len(past_dates)} past dates, {len(future_dates)} future dates, {len(request.file_paths)} files"
    )

    dispatcher = CommitDispatcher(
        db,
        repository,
        connector=connector,
        author_name=current_user.display_name or current_user.github_username,
        author_email=current_user.email or f"{current_user.github_username}@users.noreply.github.com",
        now=now
    )
    result = await dispatcher.dispatch(request, past_dates, future_dates)

    create_audit_log(
        db=db,
        request=http_request,
        action="bulk_schedule",
        entity_type="repository",
        entity_id=repository.id,
        user=current_user.github_username,
        details={
            "operation_type": request.operation_type,
            "frequency": request.frequency.value,
            "start_date": request.start_date.isoformat(),
            "end_date": request.end_date.isoformat(),
            "total_scheduled": result.total_scheduled,
            "total_executed": result.total_executed,
            "total_failed": result.total_failed
        }
    )
    return result
