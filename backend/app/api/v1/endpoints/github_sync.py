"""Refresh of the user's stored GitHub data."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.auth import get_current_active_user
from app.connectors.github_connector import GitHubConnector
from app.database import get_db
from app.dependencies import get_github_connector
from app.models.user import User
from app.schemas.sync import SyncResponse
from app.services.github_sync_service import GitHubSyncService
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sync", response_model=SyncResponse)
async def sync_github_data(
    http_request: Request,
    current_user: Annotated[User, Depends(get_current_active_user)],
    connector: Annotated[GitHubConnector, Depends(get_github_connector)],
    force: bool = Query(False, description="Sync even when the last sync is less than an hour old"),
    db: Session = Depends(get_db)
):
    """
    Refresh profile, repositories and the last year of contribution counts.
    Steps fail independently; failures are listed in `errors`.
    """
    result = await GitHubSyncService(db, current_user, connector).run(force=force)
    if result.skipped:
        return result

    create_audit_log(
        db=db,
        request=http_request,
        action="github_sync",
        entity_type="user",
        entity_id=current_user.id,
        user=current_user.github_username,
        details={
            "profile_synced": result.profile_synced,
            "repositories_synced": result.repositories_synced,
            "contributions_synced": result.contributions_synced,
            "errors": result.errors
        }
    )
    return result
