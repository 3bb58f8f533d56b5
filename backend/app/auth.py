import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User as DBUser
from app.schemas.auth import TokenData
from app.utils.encrypt import decrypt_token

OAUTH_STATE_PURPOSE = "github_oauth_state"
OAUTH_STATE_EXPIRE_MINUTES = 10

# tokenUrl only feeds the OpenAPI docs; tokens come from the GitHub OAuth callback
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_str}/auth/github/callback")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt


def create_user_token(user: DBUser) -> str:
    return create_access_token(
        data={"sub": str(user.id), "login": user.github_username},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )


def create_oauth_state() -> str:
    """Signed, short-lived OAuth `state`; the callback accepts only states issued here."""
    return create_access_token(
        data={"nonce": secrets.token_urlsafe(16), "purpose": OAUTH_STATE_PURPOSE},
        expires_delta=timedelta(minutes=OAUTH_STATE_EXPIRE_MINUTES)
    )


def verify_oauth_state(state: str) -> bool:
    try:
        payload = jwt.decode(state, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return False
    return payload.get("purpose") == OAUTH_STATE_PURPOSE


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
) -> DBUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        subject: str = payload.get("sub")
        if subject is None:
            raise credentials_exception
        token_data = TokenData(user_id=int(subject))
    except (JWTError, ValueError):
        raise credentials_exception
    user = db.query(DBUser).filter(DBUser.id == token_data.user_id).first()
    if user is None:
        raise credentials_exception
    return user


def get_current_active_user(current_user: Annotated[DBUser, Depends(get_current_user)]) -> DBUser:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def get_github_token(current_user: Annotated[DBUser, Depends(get_current_active_user)]) -> str:
    """Decrypted GitHub access token of the current user; 400 when none is stored."""
    if not current_user.github_access_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="GitHub token not found for user")
    try:
        return decrypt_token(current_user.github_access_token)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="GitHub token not found for user")
