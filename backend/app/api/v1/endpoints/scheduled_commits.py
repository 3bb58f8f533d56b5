import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, joinedload

from app.auth import get_current_active_user
from app.constants.commit_status import CommitStatus
from app.database import get_db
from app.models.repository import Repository
from app.models.scheduled_commit import ScheduledCommit
from app.models.user import User
from app.schemas.scheduled_commit import ScheduledCommitResponse
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()

ALL_STATUSES = "all"


@router.get("/", response_model=List[ScheduledCommitResponse])
async def list_scheduled_commits(
    current_user: Annotated[User, Depends(get_current_active_user)],
    status_filter: str = Query(CommitStatus.PENDING.value, alias="status"),
    repository: Optional[str] = Query(None, description="Full repository name, owner/name"),
    db: Session = Depends(get_db)
):
    """List the current user's scheduled commits, earliest first."""
    if status_filter != ALL_STATUSES and status_filter not in {s.value for s in CommitStatus}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status '{status_filter}'"
        )

    query = db.query(ScheduledCommit).join(Repository).options(
        joinedload(ScheduledCommit.repository)
    ).filter(Repository.user_id == current_user.id)

    if status_filter != ALL_STATUSES:
        query = query.filter(ScheduledCommit.status == status_filter)
    if repository:
        query = query.filter(Repository.name == repository)

    return query.order_by(ScheduledCommit.scheduled_time.asc(), ScheduledCommit.id.asc()).all()


@router.delete("/{commit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_scheduled_commit(
    commit_id: int,
    http_request: Request,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Session = Depends(get_db)
):
    """Cancel a scheduled commit that has not been picked up yet."""
    scheduled = db.query(ScheduledCommit).filter(ScheduledCommit.id == commit_id).first()
    if not scheduled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scheduled commit not found")
    if scheduled.repository.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to cancel this commit")

    # Conditional delete so a sweep claiming the row concurrently wins cleanly
    deleted = db.query(ScheduledCommit).filter(
        ScheduledCommit.id == commit_id,
        ScheduledCommit.status == CommitStatus.PENDING.value
    ).delete(synchronize_session=False)
    db.commit()
    if deleted != 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only pending commits can be cancelled"
        )

    log.info(f"Scheduled commit {commit_id} cancelled by {current_user.github_username}")
    create_audit_log(
        db=db,
        request=http_request,
        action="commit_cancelled",
        entity_type="scheduled_commit",
        entity_id=commit_id,
        user=current_user.github_username
    )
