"""Scheduled commit model for commits executed later by the sweep."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
from app.constants.commit_status import CommitStatus


class ScheduledCommit(Base):
    """A single-file commit waiting for its scheduled time."""

    __tablename__ = "scheduled_commits"

    id = Column(Integer, primary_key=True, index=True)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False, index=True)

    # Commit payload
    commit_message = Column(Text, nullable=False)
    file_path = Column(String(500), nullable=False)
    file_content = Column(Text, nullable=False, default="")

    # Local wall-clock time, stored without timezone
    scheduled_time = Column(DateTime, nullable=False)

    # 'pending' -> 'processing' -> 'completed' | 'failed'
    status = Column(String(20), nullable=False, default=CommitStatus.PENDING.value)
    attempts = Column(Integer, nullable=False, default=0)
    result = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    repository = relationship("Repository", back_populates="scheduled_commits")

    __table_args__ = (
        Index('idx_scheduled_commits_status_time', 'status', 'scheduled_time'),
    )

    def __repr__(self):
        return f"<ScheduledCommit(id={self.id}, file='{self.file_path}', status='{self.status}')>"
