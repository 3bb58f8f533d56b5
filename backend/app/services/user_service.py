"""Create or refresh users from their GitHub profile."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.user import User
from app.utils.encrypt import encrypt_token

log = logging.getLogger(__name__)


def apply_github_profile(user: User, profile: Dict[str, Any]) -> None:
    # Logins can be renamed on GitHub, the numeric id is stable
    user.github_username = profile["login"]
    user.email = profile.get("email") or user.email
    user.display_name = profile.get("name") or user.display_name
    user.avatar_url = profile.get("avatar_url") or user.avatar_url


def upsert_github_user(db: Session, profile: Dict[str, Any], access_token: str) -> User:
    """
    Insert or update the user identified by the GitHub account id, storing the
    access token encrypted.
    """
    github_id = profile["id"]
    user = db.query(User).filter(User.github_id == github_id).first()
    if user is None:
        user = User(github_id=github_id, github_username=profile["login"])
        db.add(user)
        log.info(f"Creating user for GitHub account {profile['login']}")

    apply_github_profile(user, profile)
    user.github_access_token = encrypt_token(access_token)

    db.commit()
    db.refresh(user)
    return user
