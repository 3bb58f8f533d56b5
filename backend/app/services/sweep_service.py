"""Periodic execution of due scheduled commits."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.connectors.exceptions import GitHubAPIError
from app.connectors.github_connector import GitHubConnector
from app.constants.commit_status import CommitStatus, can_transition
from app.models.scheduled_commit import ScheduledCommit
from app.utils.encrypt import decrypt_token

log = logging.getLogger(__name__)


class ScheduledCommitSweeper:
    """
    Drains pending scheduled commits whose time has come.

    Each record is claimed with a conditional UPDATE (pending -> processing)
    so overlapping sweeps never execute the same record twice. Transient
    GitHub failures are retried in place with exponential backoff; the record
    stays 'processing' meanwhile and ends as 'completed' or 'failed'.
    """

    def __init__(
        self,
        db: Session,
        connector_factory: Callable[[Dict[str, Any]], GitHubConnector] = GitHubConnector,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep=asyncio.sleep
    ):
        self.db = db
        self.connector_factory = connector_factory
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.sweep_max_attempts)
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.sweep_backoff_seconds
        self.sleep = sleep

    def find_due(self, now: datetime) -> List[int]:
        """Ids of due pending records, oldest first."""
        rows = self.db.query(ScheduledCommit.id).filter(
            ScheduledCommit.status == CommitStatus.PENDING.value,
            ScheduledCommit.scheduled_time <= now
        ).order_by(ScheduledCommit.scheduled_time.asc(), ScheduledCommit.id.asc()).all()
        return [row.id for row in rows]

    def claim(self, commit_id: int) -> bool:
        """Atomically move a record from pending to processing. False if someone else got it."""
        claimed = self.db.query(ScheduledCommit).filter(
            ScheduledCommit.id == commit_id,
            ScheduledCommit.status == CommitStatus.PENDING.value
        ).update({ScheduledCommit.status: CommitStatus.PROCESSING.value}, synchronize_session=False)
        self.db.commit()
        return claimed == 1

    def _finish(self, commit_id: int, status: CommitStatus, result: Dict[str, Any], attempts: int) -> None:
        if not can_transition(CommitStatus.PROCESSING, status):
            raise ValueError(f"Scheduled commit cannot move from processing to {status.value}")
        updated = self.db.query(ScheduledCommit).filter(
            ScheduledCommit.id == commit_id,
            ScheduledCommit.status == CommitStatus.PROCESSING.value
        ).update({
            ScheduledCommit.status: status.value,
            ScheduledCommit.result: result,
            ScheduledCommit.attempts: attempts
        }, synchronize_session=False)
        self.db.commit()
        if updated != 1:
            log.warning(f"Scheduled commit {commit_id} was no longer processing when marking it {status.value}")

    async def _execute(self, scheduled: ScheduledCommit) -> str:
        """Single-file commit of the stored content; returns the new commit SHA."""
        repository = scheduled.repository
        user = repository.user
        if not user or not user.github_access_token:
            raise ValueError("GitHub token not found for user")

        token = decrypt_token(user.github_access_token)
        owner, repo = repository.owner_and_name
        identity = {
            "name": user.github_username,
            "email": f"{user.github_username}@users.noreply.github.com"
        }

        async with self.connector_factory({"access_token": token}) as connector:
            file_sha = await connector.get_file_sha(owner, repo, scheduled.file_path)
            commit = await connector.put_file(
                owner, repo, scheduled.file_path, scheduled.file_content, scheduled.commit_message,
                sha=file_sha, author=identity, committer=identity
            )
        return commit["sha"]

    async def _execute_with_retry(self, scheduled: ScheduledCommit) -> Tuple[str, int]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._execute(scheduled), attempt
            except GitHubAPIError as e:
                if not e.is_transient or attempt >= self.max_attempts:
                    e.attempts = attempt
                    raise
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                log.warning(
                    f"Transient failure on scheduled commit {scheduled.id} "
                    f"(attempt {attempt}/{self.max_attempts}), retrying in {delay:.1f}s: {e}"
                )
                await self.sleep(delay)

    async def process(self, commit_id: int) -> Optional[Dict[str, Any]]:
        """Claim and execute one record. None when it was claimed elsewhere or no longer exists."""
        if not self.claim(commit_id):
            log.info(f"Scheduled commit {commit_id} already claimed or cancelled, skipping")
            return None

        # Load after the claim so a row removed in the meantime is seen as missing
        scheduled = self.db.get(ScheduledCommit, commit_id)
        if scheduled is None:
            log.warning(f"Scheduled commit {commit_id} disappeared after being claimed, skipping")
            return None
        repository_name = scheduled.repository.name

        try:
            commit_sha, attempts = await self._execute_with_retry(scheduled)
        except Exception as e:
            attempts = getattr(e, "attempts", 1)
            error = str(e)
            log.error(f"Error processing scheduled commit {commit_id}: {error}")
            self._finish(commit_id, CommitStatus.FAILED, {
                "error": error,
                "failedAt": datetime.now().isoformat(),
                "attempts": attempts
            }, attempts)
            return {"id": commit_id, "repository": repository_name, "status": CommitStatus.FAILED.value, "error": error}

        self._finish(commit_id, CommitStatus.COMPLETED, {
            "commitSha": commit_sha,
            "completedAt": datetime.now().isoformat()
        }, attempts)
        log.info(f"Scheduled commit {commit_id} completed as {commit_sha[:7]} on {repository_name}")
        return {"id": commit_id, "repository": repository_name, "status": CommitStatus.COMPLETED.value, "commitSha": commit_sha}

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now()
        due_ids = self.find_due(now)
        if not due_ids:
            log.debug("No pending scheduled commits to process")
            return {"processed": 0, "results": []}

        log.info(f"Found {len(due_ids)} pending scheduled commits to process")
        results = []
        for commit_id in due_ids:
            try:
                outcome = await self.process(commit_id)
            except Exception as e:
                log.error(f"Sweep could not process scheduled commit {commit_id}: {e}", exc_info=True)
                self.db.rollback()
                continue
            if outcome is not None:
                results.append(outcome)

        log.info(f"Processed {len(results)} scheduled commits")
        return {"processed": len(results), "results": results}
