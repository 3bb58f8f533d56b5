import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.auth import create_oauth_state, create_user_token, get_current_active_user, verify_oauth_state
from app.connectors.exceptions import GitHubAuthError
from app.connectors.github_oauth import build_authorize_url, exchange_code_for_token, fetch_github_user
from app.database import get_db
from app.models.user import User as DBUser
from app.schemas.auth import AuthorizeUrl, Token, User
from app.services.user_service import upsert_github_user
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/auth/github/login", response_model=AuthorizeUrl)
async def github_login():
    """Return the GitHub authorize URL the browser should be sent to."""
    state = create_oauth_state()
    return AuthorizeUrl(authorize_url=build_authorize_url(state), state=state)


@router.get("/auth/github/callback", response_model=Token)
async def github_callback(
    request: Request,
    code: str = Query(..., min_length=1),
    state: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """Exchange the OAuth code, upsert the user and return a session token."""
    if not verify_oauth_state(state):
        log.warning("GitHub login rejected: invalid or expired OAuth state")
        create_audit_log(db, request, action="login_failed", details={"error": "invalid oauth state"})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OAuth state"
        )

    try:
        github_token = await exchange_code_for_token(code)
        profile = await fetch_github_user(github_token)
    except GitHubAuthError as e:
        log.warning(f"GitHub login failed: {e}")
        if e.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        create_audit_log(db, request, action="login_failed", details={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="GitHub authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = upsert_github_user(db, profile, github_token)
    create_audit_log(
        db, request,
        action="login_success",
        entity_type="user",
        entity_id=user.id,
        user=user.github_username
    )
    log.info(f"User {user.github_username} signed in")
    return {"access_token": create_user_token(user), "token_type": "bearer"}


@router.get("/users/me", response_model=User)
async def read_users_me(current_user: Annotated[DBUser, Depends(get_current_active_user)]):
    """Get current user information."""
    return current_user
