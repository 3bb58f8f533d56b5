from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from pydantic import Field, field_validator, model_validator

from app.schemas.base import CamelModel, validate_hhmm
from app.services.date_expander import Frequency


class BulkScheduleRequest(CamelModel):
    repo_name: str = Field(..., min_length=1, description="Repository name, 'name' or 'owner/name'")
    file_paths: List[str] = Field(..., min_length=1, description="Files written by every commit")
    commit_message_template: str = Field(..., min_length=1, description="Message template, '{{date}}' is replaced")
    commit_messages: Optional[List[str]] = Field(None, description="Candidate templates, one is picked at random per date")
    file_contents: Dict[str, str] = Field(default_factory=dict, description="Content per file path")
    start_date: date
    end_date: date
    time_of_day: str = Field(..., description="HH:MM used when no candidate times are given")
    times: Optional[List[str]] = Field(None, description="Candidate HH:MM times, one is picked at random per date")
    frequency: Frequency
    operation_type: Literal['fix', 'schedule'] = 'schedule'

    @field_validator('time_of_day')
    @classmethod
    def validate_time_of_day(cls, v: str) -> str:
        return validate_hhmm(v)

    @field_validator('times')
    @classmethod
    def validate_times(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v:
            for t in v:
                validate_hhmm(t)
        return v

    @field_validator('file_paths')
    @classmethod
    def validate_file_paths(cls, v: List[str]) -> List[str]:
        cleaned = [p.strip().lstrip("/") for p in v]
        if any(not p for p in cleaned):
            raise ValueError("File paths must not be empty")
        return cleaned

    @model_validator(mode='after')
    def validate_range(self):
        if self.start_date > self.end_date:
            raise ValueError("startDate must be on or before endDate")
        return self


class ScheduledCommitEntry(CamelModel):
    id: int
    date: str
    time: str
    file_path: str
    scheduled_time: datetime


class ExecutedCommitEntry(CamelModel):
    date: str
    time: str
    commit_sha: str
    parent_sha: str
    message: str
    files: List[str]
    failed_files: List[str] = Field(default_factory=list)


class FailedCommitEntry(CamelModel):
    date: str
    file_path: Optional[str] = None
    error: str


class SkippedDateEntry(CamelModel):
    date: str
    reason: str


class BulkScheduleResponse(CamelModel):
    repository: str
    scheduled_commits: List[ScheduledCommitEntry] = Field(default_factory=list)
    executed_commits: List[ExecutedCommitEntry] = Field(default_factory=list)
    failed_commits: List[FailedCommitEntry] = Field(default_factory=list)
    skipped_dates: List[SkippedDateEntry] = Field(default_factory=list)
    total_scheduled: int = 0
    total_executed: int = 0
    total_failed: int = 0
    message: str = ""
