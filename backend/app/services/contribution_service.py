"""Contribution calendar flattening, streak statistics and stored daily counts."""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.connectors.github_connector import GitHubConnector
from app.models.contribution import Contribution
from app.models.user import User
from app.schemas.contributions import ContributionDay, ContributionSummary, StreakStats
from app.services.repository_service import DIALECT_INSERTS

log = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 50


def flatten_calendar(collection: Dict[str, Any]) -> List[ContributionDay]:
    """Weeks of contribution days -> one ascending list of days."""
    weeks = collection.get("contributionCalendar", {}).get("weeks", [])
    days = [
        ContributionDay(
            date=day["date"],
            count=day.get("contributionCount", 0),
            color=day.get("color"),
            weekday=day.get("weekday")
        )
        for week in weeks
        for day in week.get("contributionDays", [])
    ]
    days.sort(key=lambda d: d.date)
    return days


def compute_streaks(days: List[ContributionDay], today: Optional[date] = None) -> StreakStats:
    """
    Current streak ends today, or yesterday when nothing was contributed today
    yet. Days missing from the calendar count as zero. Gap dates are the
    zero-contribution days of the range, today excluded.
    """
    today = today or date.today()
    counts = {day.date: day.count for day in days}
    if not counts:
        return StreakStats()

    first, last = min(counts), max(counts)
    longest = run = 0
    active_days = 0
    gaps: List[date] = []
    current = first
    while current <= last:
        count = counts.get(current, 0)
        if count > 0:
            run += 1
            active_days += 1
            longest = max(longest, run)
        else:
            run = 0
            if current < today:
                gaps.append(current)
        current += timedelta(days=1)

    current_streak = 0
    cursor = today if counts.get(today, 0) > 0 else today - timedelta(days=1)
    while counts.get(cursor, 0) > 0:
        current_streak += 1
        cursor -= timedelta(days=1)

    return StreakStats(
        current_streak=current_streak,
        longest_streak=longest,
        active_days=active_days,
        gap_dates=gaps
    )


async def get_contribution_summary(
    connector: GitHubConnector,
    username: str,
    from_dt: datetime,
    to_dt: datetime,
    today: Optional[date] = None
) -> ContributionSummary:
    collection = await connector.fetch_contributions(username, from_dt, to_dt)
    days = flatten_calendar(collection)
    calendar = collection.get("contributionCalendar", {})
    summary = ContributionSummary(
        username=username,
        total_contributions=calendar.get("totalContributions", 0),
        total_commits=collection.get("totalCommitContributions", 0),
        total_issues=collection.get("totalIssueContributions", 0),
        total_pull_requests=collection.get("totalPullRequestContributions", 0),
        total_pull_request_reviews=collection.get("totalPullRequestReviewContributions", 0),
        total_repositories_with_commits=collection.get("totalRepositoriesWithContributedCommits", 0),
        calendar=days,
        streaks=compute_streaks(days, today)
    )
    log.debug(
        f"Contributions for {username}: total={summary.total_contributions}, "
        f"current streak={summary.streaks.current_streak}, gaps={len(summary.streaks.gap_dates)}"
    )
    return summary


def store_contributions(db: Session, user: User, days: List[ContributionDay]) -> int:
    """Upsert one row per (user, day) holding that day's count. Returns the number of days written."""
    rows = [{"user_id": user.id, "date": day.date, "count": day.count} for day in days]
    if not rows:
        return 0

    insert = DIALECT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        for start in range(0, len(rows), UPSERT_BATCH_SIZE):
            stmt = insert(Contribution).values(rows[start:start + UPSERT_BATCH_SIZE])
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "date"],
                set_={"count": stmt.excluded["count"], "updated_at": func.now()}
            )
            db.execute(stmt)
    else:
        stored = {
            c.date: c for c in db.query(Contribution).filter(Contribution.user_id == user.id)
        }
        for row in rows:
            existing = stored.get(row["date"])
            if existing is None:
                db.add(Contribution(**row))
            else:
                existing.count = row["count"]
    db.commit()
    log.debug(f"Stored {len(rows)} contribution days for {user.github_username}")
    return len(rows)


def load_contributions(db: Session, user: User, start: date, end: date) -> List[ContributionDay]:
    rows = db.query(Contribution).filter(
        Contribution.user_id == user.id,
        Contribution.date >= start,
        Contribution.date <= end
    ).order_by(Contribution.date).all()
    return [ContributionDay(date=row.date, count=row.count) for row in rows]
