from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import Field, field_validator

from app.schemas.base import CamelModel, validate_hhmm


class ScheduleCommitRequest(CamelModel):
    """A single commit executed by the sweep at `date` `time` (local wall-clock)."""
    repo_name: str = Field(..., min_length=1)
    file_path: str = Field(..., min_length=1)
    commit_message: str = Field(..., min_length=1)
    file_content: str = Field(..., min_length=1)
    date: date
    time: str

    @field_validator('time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        return validate_hhmm(v)


class BackdatedCommitRequest(ScheduleCommitRequest):
    """A single commit created now with author/committer dates set to `date` `time`."""


class ScheduleCommitResponse(CamelModel):
    commit_id: int
    scheduled_time: datetime
    repository: str
    file_path: str
    message: str = "Commit scheduled successfully"


class BackdatedCommitResponse(CamelModel):
    commit_sha: str
    commit_url: Optional[str] = None
    timestamp: str
    repository: str
    message: str = "Successfully created backdated commit"


class RepositoryRef(CamelModel):
    id: int
    name: str
    url: str


class ScheduledCommitResponse(CamelModel):
    id: int
    commit_message: str
    file_path: str
    scheduled_time: datetime
    status: str
    attempts: int = 0
    result: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    repository: RepositoryRef


class SweepResult(CamelModel):
    id: int
    repository: str
    status: str
    commit_sha: Optional[str] = None
    error: Optional[str] = None


class SweepResponse(CamelModel):
    processed: int
    results: List[SweepResult] = Field(default_factory=list)
    message: str = ""


class SweepStatus(CamelModel):
    enabled: bool
    cron: str
    running: bool
    next_runs: List[str] = Field(default_factory=list, description="Next 3 run times (ISO format)")
