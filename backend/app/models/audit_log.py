"""Audit log model for tracking user and sweep operations."""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.database import Base


class AuditLog(Base):
    """Audit trail for logins, commit requests and sweep runs."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # 'login_success', 'login_failed', 'bulk_schedule', 'commit_scheduled',
    # 'backdated_commit', 'commit_cancelled', 'sweep_completed', 'github_sync'
    action = Column(String(100), nullable=False)
    entity_type = Column(String(50), nullable=True)  # 'repository', 'scheduled_commit', 'user'
    entity_id = Column(Integer, nullable=True)

    user = Column(String(100), nullable=True)  # GitHub username, or 'cron'
    details = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_logs_action', 'action'),
        Index('idx_audit_logs_user_created', 'user', 'created_at'),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity='{self.entity_type}')>"
