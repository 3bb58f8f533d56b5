"""
Turn expanded commit dates into commits.

Future dates become pending ScheduledCommit rows drained later by the sweep.
Past dates of a 'fix' request are committed right away as a chain of
backdated commits on the default branch, one commit per date, each carrying
every configured file.
"""

import logging
import random
from datetime import date, datetime, time
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.connectors.github_connector import GitHubConnector
from app.constants.commit_status import CommitStatus
from app.models.repository import Repository
from app.models.scheduled_commit import ScheduledCommit
from app.schemas.bulk import (
    BulkScheduleRequest,
    BulkScheduleResponse,
    ExecutedCommitEntry,
    FailedCommitEntry,
    ScheduledCommitEntry,
    SkippedDateEntry,
)

log = logging.getLogger(__name__)

DATE_TOKEN = "{{date}}"


def parse_time_of_day(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


def resolve_commit_time(commit_date: date, time_of_day: str, times: Optional[List[str]] = None, rng=random) -> datetime:
    """Naive local timestamp: a random candidate time if any, else `time_of_day`."""
    chosen = rng.choice(times) if times else time_of_day
    return datetime.combine(commit_date, parse_time_of_day(chosen))


def resolve_commit_message(commit_date: date, template: str, messages: Optional[List[str]] = None, rng=random) -> str:
    """A random candidate template if any, else `template`, with the date token filled in."""
    chosen = rng.choice(messages) if messages else template
    return chosen.replace(DATE_TOKEN, commit_date.isoformat(), 1)


def git_identity(name: str, email: str, when: datetime) -> Dict[str, str]:
    # Naive wall-clock time is tagged with the server's local offset, not shifted
    return {"name": name, "email": email, "date": when.astimezone().isoformat()}


class CommitDispatcher:
    """Routes each date of a bulk request to the scheduled or the immediate path."""

    def __init__(
        self,
        db: Session,
        repository: Repository,
        connector: Optional[GitHubConnector] = None,
        author_name: str = "GitHub User",
        author_email: str = "user@users.noreply.github.com",
        rng=random,
        now: Optional[datetime] = None
    ):
        self.db = db
        self.repository = repository
        self.connector = connector
        self.author_name = author_name
        self.author_email = author_email
        self.rng = rng
        self.now = now

    def _resolve(self, request: BulkScheduleRequest, commit_date: date):
        commit_time = resolve_commit_time(commit_date, request.time_of_day, request.times, self.rng)
        message = resolve_commit_message(
            commit_date, request.commit_message_template, request.commit_messages, self.rng
        )
        return commit_time, message

    def schedule_future(self, request: BulkScheduleRequest, dates: List[date], result: BulkScheduleResponse) -> None:
        """One pending ScheduledCommit per (date, file). Failed inserts are skipped."""
        for commit_date in dates:
            commit_time, message = self._resolve(request, commit_date)
            for file_path in request.file_paths:
                try:
                    scheduled = ScheduledCommit(
                        repository_id=self.repository.id,
                        commit_message=message,
                        file_path=file_path,
                        file_content=request.file_contents.get(file_path, ""),
                        scheduled_time=commit_time,
                        status=CommitStatus.PENDING.value,
                        attempts=0
                    )
                    self.db.add(scheduled)
                    self.db.commit()
                    self.db.refresh(scheduled)
                except Exception as e:
                    self.db.rollback()
                    log.error(f"Error scheduling commit for {commit_date.isoformat()} ({file_path}): {e}")
                    result.failed_commits.append(FailedCommitEntry(
                        date=commit_date.isoformat(), file_path=file_path, error=str(e)
                    ))
                    continue

                log.debug(f"Scheduled commit {scheduled.id} for {commit_time.isoformat()} ({file_path})")
                result.scheduled_commits.append(ScheduledCommitEntry(
                    id=scheduled.id,
                    date=commit_date.isoformat(),
                    time=commit_time.strftime("%H:%M"),
                    file_path=file_path,
                    scheduled_time=commit_time
                ))

    async def execute_past(self, request: BulkScheduleRequest, dates: List[date], result: BulkScheduleResponse) -> None:
        """
        Commit every past date now, oldest first, each commit parented on the
        previous one and the branch force-moved after each.
        Today's commit is capped at the current minute so nothing is dated
        in the future.
        """
        if not dates:
            return
        if self.connector is None:
            raise RuntimeError("A GitHub connector is required to execute past-date commits")

        owner, repo = self.repository.owner_and_name
        try:
            branch = await self.connector.get_default_branch(owner, repo)
            head_sha = await self.connector.get_branch_head(owner, repo, branch)
            head_commit = await self.connector.get_commit(owner, repo, head_sha)
            head_tree = head_commit["tree"]["sha"]
        except Exception as e:
            log.error(f"Cannot resolve branch head of {self.repository.name}: {e}")
            for commit_date in dates:
                result.failed_commits.append(FailedCommitEntry(
                    date=commit_date.isoformat(), error=f"Cannot resolve branch head: {e}"
                ))
            return

        log.info(f"Creating {len(dates)} backdated commits on {self.repository.name}@{branch} from {head_sha[:7]}")

        latest = (self.now or datetime.now()).replace(second=0, microsecond=0)
        for commit_date in sorted(dates):
            try:
                commit_time, message = self._resolve(request, commit_date)
                if commit_time > latest:
                    commit_time = latest

                blobs: Dict[str, str] = {}
                failed_files: List[str] = []
                for file_path in request.file_paths:
                    try:
                        blobs[file_path] = await self.connector.create_blob(
                            owner, repo, request.file_contents.get(file_path, "")
                        )
                    except Exception as e:
                        log.warning(f"Blob creation failed for {file_path} on {commit_date.isoformat()}: {e}")
                        failed_files.append(file_path)
                        result.failed_commits.append(FailedCommitEntry(
                            date=commit_date.isoformat(), file_path=file_path, error=str(e)
                        ))

                if not blobs:
                    log.warning(f"No blobs created for {commit_date.isoformat()}, skipping date")
                    result.skipped_dates.append(SkippedDateEntry(
                        date=commit_date.isoformat(), reason="no file blobs could be created"
                    ))
                    continue

                tree_sha = await self.connector.create_tree(owner, repo, head_tree, blobs)
                identity = git_identity(self.author_name, self.author_email, commit_time)
                commit = await self.connector.create_commit(
                    owner, repo, message, tree_sha, [head_sha], author=identity, committer=identity
                )
                await self.connector.update_branch_ref(owner, repo, branch, commit["sha"], force=True)

                result.executed_commits.append(ExecutedCommitEntry(
                    date=commit_date.isoformat(),
                    time=commit_time.strftime("%H:%M"),
                    commit_sha=commit["sha"],
                    parent_sha=head_sha,
                    message=message,
                    files=list(blobs),
                    failed_files=failed_files
                ))
                log.info(f"Backdated commit {commit['sha'][:7]} for {commit_date.isoformat()} on {self.repository.name}")
                head_sha, head_tree = commit["sha"], tree_sha
            except Exception as e:
                log.error(f"Error creating backdated commit for {commit_date.isoformat()}: {e}", exc_info=True)
                result.failed_commits.append(FailedCommitEntry(date=commit_date.isoformat(), error=str(e)))

    async def dispatch(
        self,
        request: BulkScheduleRequest,
        past_dates: List[date],
        future_dates: List[date]
    ) -> BulkScheduleResponse:
        result = BulkScheduleResponse(repository=self.repository.name)

        self.schedule_future(request, future_dates, result)

        if request.operation_type == "fix":
            await self.execute_past(request, past_dates, result)
        else:
            for commit_date in past_dates:
                result.skipped_dates.append(SkippedDateEntry(
                    date=commit_date.isoformat(), reason="date is in the past"
                ))

        result.total_scheduled = len(result.scheduled_commits)
        result.total_executed = len(result.executed_commits)
        result.total_failed = len(result.failed_commits)
        result.message = (
            f"Scheduled {result.total_scheduled} commits and executed {result.total_executed} commits"
            + (f" ({result.total_failed} failures)" if result.total_failed else "")
        )
        log.info(f"Bulk request on {self.repository.name}: {result.message}")
        return result
