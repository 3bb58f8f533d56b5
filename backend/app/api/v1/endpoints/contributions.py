import logging
from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.auth import get_current_active_user
from app.connectors.exceptions import GitHubAPIError
from app.connectors.github_connector import GitHubConnector
from app.database import get_db
from app.dependencies import get_github_connector, github_http_error
from app.models.user import User
from app.schemas.contributions import ContributionHistory, ContributionSummary
from app.services.contribution_service import compute_streaks, get_contribution_summary, load_contributions
from app.services.github_sync_service import as_utc

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=ContributionSummary)
async def get_contributions(
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    username: Optional[str] = Query(None, description="Defaults to the signed-in user"),
    from_: Optional[datetime] = Query(None, alias="from"),
    to: Optional[datetime] = Query(None)
):
    """Contribution calendar and streak statistics, the last year by default."""
    to_dt = to or datetime.now(timezone.utc)
    if to_dt.tzinfo is None:
        to_dt = to_dt.replace(tzinfo=timezone.utc)
    from_dt = from_ or to_dt - timedelta(days=365)
    if from_dt.tzinfo is None:
        from_dt = from_dt.replace(tzinfo=timezone.utc)
    if from_dt > to_dt:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'from' must not be after 'to'")

    try:
        return await get_contribution_summary(connector, username or current_user.github_username, from_dt, to_dt)
    except GitHubAPIError as e:
        raise github_http_error(e)


@router.get("/history", response_model=ContributionHistory)
async def get_contribution_history(
    current_user: Annotated[User, Depends(get_current_active_user)],
    from_: Optional[date] = Query(None, alias="from"),
    to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """Daily counts stored by the last sync. Empty until POST /github/sync has run."""
    to_date = to or date.today()
    from_date = from_ or to_date - timedelta(days=365)
    if from_date > to_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'from' must not be after 'to'")

    days = load_contributions(db, current_user, from_date, to_date)
    return ContributionHistory(
        username=current_user.github_username,
        last_synced_at=as_utc(current_user.last_synced_at),
        calendar=days,
        streaks=compute_streaks(days)
    )
