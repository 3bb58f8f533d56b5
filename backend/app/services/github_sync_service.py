"""
Refresh a user's GitHub data into the local tables: profile fields,
repository rows and the last year of daily contribution counts.

Each step runs on its own. A failing step is logged and reported in the
result while the remaining steps still run.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.connectors.github_connector import GitHubConnector
from app.models.user import User
from app.schemas.sync import SyncResponse
from app.services.contribution_service import flatten_calendar, store_contributions
from app.services.repository_service import sync_repositories
from app.services.user_service import apply_github_profile

log = logging.getLogger(__name__)

SYNC_INTERVAL = timedelta(hours=1)
HISTORY_WINDOW = timedelta(days=365)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def needs_sync(user: User, now: Optional[datetime] = None, interval: timedelta = SYNC_INTERVAL) -> bool:
    last = as_utc(user.last_synced_at)
    if last is None:
        return True
    return (now or datetime.now(timezone.utc)) - last > interval


class GitHubSyncService:
    def __init__(self, db: Session, user: User, connector: GitHubConnector, now: Optional[datetime] = None):
        self.db = db
        self.user = user
        self.connector = connector
        self.now = now or datetime.now(timezone.utc)

    async def sync_profile(self) -> None:
        profile = await self.connector.get_authenticated_user()
        if profile.get("id") is not None and profile["id"] != self.user.github_id:
            raise ValueError("GitHub token belongs to a different account")
        apply_github_profile(self.user, profile)
        self.db.commit()
        log.debug(f"Profile of {self.user.github_username} refreshed")

    async def sync_repositories(self) -> int:
        remote_repos = await self.connector.list_repositories()
        return len(sync_repositories(self.db, self.user, remote_repos))

    async def sync_contributions(self) -> int:
        collection = await self.connector.fetch_contributions(
            self.user.github_username, self.now - HISTORY_WINDOW, self.now
        )
        return store_contributions(self.db, self.user, flatten_calendar(collection))

    async def run(self, force: bool = False) -> SyncResponse:
        if not force and not needs_sync(self.user, self.now):
            log.info(f"Skipping GitHub sync for {self.user.github_username}, last synced {self.user.last_synced_at}")
            return SyncResponse(skipped=True, last_synced_at=as_utc(self.user.last_synced_at))

        log.info(f"Starting GitHub sync for {self.user.github_username}")
        result = SyncResponse()

        try:
            await self.sync_profile()
            result.profile_synced = True
        except Exception as e:
            log.error(f"Profile sync failed for {self.user.github_username}: {e}", exc_info=True)
            self.db.rollback()
            result.errors.append(f"profile: {e}")

        try:
            result.repositories_synced = await self.sync_repositories()
        except Exception as e:
            log.error(f"Repository sync failed for {self.user.github_username}: {e}", exc_info=True)
            self.db.rollback()
            result.errors.append(f"repositories: {e}")

        try:
            result.contributions_synced = await self.sync_contributions()
        except Exception as e:
            log.error(f"Contribution sync failed for {self.user.github_username}: {e}", exc_info=True)
            self.db.rollback()
            result.errors.append(f"contributions: {e}")

        # A partial sync stays due so the next request retries it
        if not result.errors:
            self.user.last_synced_at = self.now
            self.db.commit()
        result.last_synced_at = as_utc(self.user.last_synced_at)

        log.info(
            f"GitHub sync for {self.user.github_username} finished: profile={result.profile_synced}, "
            f"repositories={result.repositories_synced}, contributions={result.contributions_synced}, "
            f"errors={len(result.errors)}"
        )
        return result
