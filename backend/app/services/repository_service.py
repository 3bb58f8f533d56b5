"""Get-or-create of Repository rows, one per (user, full name)."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.repository import Repository
from app.models.user import User

log = logging.getLogger(__name__)

DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def resolve_full_name(repo_name: str, default_owner: str) -> str:
    """'name' -> 'default_owner/name'; 'owner/name' is kept as is."""
    repo_name = (repo_name or "").strip().strip("/")
    parts = repo_name.split("/")
    if len(parts) == 1 and parts[0]:
        return f"{default_owner}/{parts[0]}"
    if len(parts) == 2 and all(parts):
        return repo_name
    raise ValueError(f"Invalid repository name: '{repo_name}'. Expected 'name' or 'owner/name'.")


def upsert_repository(
    db: Session,
    user: User,
    full_name: str,
    url: Optional[str] = None,
    is_private: bool = False,
    update_existing: bool = False
) -> Repository:
    """
    Insert the repository unless (user, full_name) already exists, then return
    the stored row. A single INSERT ... ON CONFLICT keeps concurrent requests
    from creating duplicates.

    With `update_existing`, url and privacy of an existing row are refreshed
    (used when syncing from the GitHub listing).
    """
    values = {
        "user_id": user.id,
        "name": full_name,
        "url": url or f"https://github.com/{full_name}",
        "is_private": is_private,
    }
    insert = DIALECT_INSERTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(Repository).values(**values)
        if update_existing:
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "name"],
                set_={"url": values["url"], "is_private": values["is_private"]}
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "name"])
        db.execute(stmt)
        db.commit()
    else:
        # Other dialects: rely on the unique constraint and re-read on conflict
        try:
            db.add(Repository(**values))
            db.commit()
        except IntegrityError:
            db.rollback()
            log.debug(f"Repository {full_name} already exists for user {user.id}")

    repository = db.query(Repository).filter(
        Repository.user_id == user.id,
        Repository.name == full_name
    ).one()
    db.refresh(repository)
    log.debug(f"Using repository record {repository.id} for {full_name}")
    return repository


def ensure_repository(db: Session, user: User, repo_name: str) -> Repository:
    """Resolve a bare or qualified repository name and get-or-create its row."""
    full_name = resolve_full_name(repo_name, user.github_username)
    return upsert_repository(db, user, full_name)


def sync_repositories(
    db: Session,
    user: User,
    remote_repos: List[Dict[str, Any]]
) -> List[Tuple[Repository, Dict[str, Any]]]:
    """Upsert every repository of a GitHub listing; pairs each stored row with its remote entry."""
    synced = []
    for remote in remote_repos:
        repository = upsert_repository(
            db,
            user,
            remote["full_name"],
            url=remote.get("html_url"),
            is_private=bool(remote.get("private")),
            update_existing=True
        )
        synced.append((repository, remote))
    log.info(f"Synced {len(synced)} repositories for {user.github_username}")
    return synced
