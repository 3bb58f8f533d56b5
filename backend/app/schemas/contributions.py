from datetime import date, datetime
from typing import List, Optional
from pydantic import Field

from app.schemas.base import CamelModel


class ContributionDay(CamelModel):
    date: date
    count: int = 0
    color: Optional[str] = None
    weekday: Optional[int] = None


class StreakStats(CamelModel):
    current_streak: int = 0
    longest_streak: int = 0
    active_days: int = 0
    gap_dates: List[date] = Field(default_factory=list, description="Past days without contributions")


class ContributionSummary(CamelModel):
    username: str
    total_contributions: int = 0
    total_commits: int = 0
    total_issues: int = 0
    total_pull_requests: int = 0
    total_pull_request_reviews: int = 0
    total_repositories_with_commits: int = 0
    calendar: List[ContributionDay] = Field(default_factory=list)
    streaks: StreakStats = Field(default_factory=StreakStats)


class ContributionHistory(CamelModel):
    """Daily counts stored by the last sync, with streaks computed over them."""
    username: str
    last_synced_at: Optional[datetime] = None
    calendar: List[ContributionDay] = Field(default_factory=list)
    streaks: StreakStats = Field(default_factory=StreakStats)
