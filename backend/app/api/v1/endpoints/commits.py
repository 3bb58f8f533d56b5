"""Single scheduled or backdated commits."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.auth import get_current_active_user
from app.connectors.exceptions import GitHubAPIError
from app.connectors.github_connector import GitHubConnector
from app.constants.commit_status import CommitStatus
from app.database import get_db
from app.dependencies import get_github_connector, github_http_error
from app.models.scheduled_commit import ScheduledCommit
from app.models.user import User
from app.schemas.scheduled_commit import (
    BackdatedCommitRequest,
    BackdatedCommitResponse,
    ScheduleCommitRequest,
    ScheduleCommitResponse,
)
from app.services.commit_dispatcher import git_identity, parse_time_of_day
from app.services.repository_service import ensure_repository
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/schedule", response_model=ScheduleCommitResponse, status_code=status.HTTP_201_CREATED)
async def schedule_commit(
    http_request: Request,
    request: ScheduleCommitRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db)
):
    """Store one commit for the sweep to execute at the given date and time."""
    scheduled_time = datetime.combine(request.date, parse_time_of_day(request.time))
    if scheduled_time <= datetime.now():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Scheduled time must be in the future"
        )

    try:
        repository = ensure_repository(db, current_user, request.repo_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    scheduled = ScheduledCommit(
        repository_id=repository.id,
        commit_message=request.commit_message,
        file_path=request.file_path,
        file_content=request.file_content,
        scheduled_time=scheduled_time,
        status=CommitStatus.PENDING.value,
        attempts=0
    )
    db.add(scheduled)
    db.commit()
    db.refresh(scheduled)
    log.info(f"Scheduled commit {scheduled.id} on {repository.name} for {scheduled_time.isoformat()}")

    create_audit_log(
        db=db,
        request=http_request,
        action="commit_scheduled",
        entity_type="scheduled_commit",
        entity_id=scheduled.id,
        user=current_user.github_username,
        details={"repository": repository.name, "scheduled_time": scheduled_time.isoformat()}
    )

    return ScheduleCommitResponse(
        commit_id=scheduled.id,
        scheduled_time=scheduled_time,
        repository=repository.name,
        file_path=scheduled.file_path
    )


@router.post("/backdated", response_model=BackdatedCommitResponse)
async def create_backdated_commit(
    http_request: Request,
    request: BackdatedCommitRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    db: Session = Depends(get_db)
):
    """Commit one file now, with author and committer dates set to the requested moment."""
    try:
        repository = ensure_repository(db, current_user, request.repo_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    commit_time = datetime.combine(request.date, parse_time_of_day(request.time))
    identity = git_identity(
        current_user.display_name or current_user.github_username,
        current_user.email or f"{current_user.github_username}@users.noreply.github.com",
        commit_time
    )
    owner, repo = repository.owner_and_name

    try:
        file_sha = await connector.get_file_sha(owner, repo, request.file_path)
        commit = await connector.put_file(
            owner, repo, request.file_path, request.file_content, request.commit_message,
            sha=file_sha, author=identity, committer=identity
        )
    except GitHubAPIError as e:
        log.error(f"Backdated commit on {repository.name} failed: {e}")
        raise github_http_error(e)

    log.info(f"Backdated commit {commit['sha'][:7]} on {repository.name} dated {identity['date']}")
    create_audit_log(
        db=db,
        request=http_request,
        action="backdated_commit",
        entity_type="repository",
        entity_id=repository.id,
        user=current_user.github_username,
        details={"commit_sha": commit["sha"], "timestamp": identity["date"], "file_path": request.file_path}
    )

    return BackdatedCommitResponse(
        commit_sha=commit["sha"],
        commit_url=commit.get("html_url"),
        timestamp=identity["date"],
        repository=repository.name
    )
