"""Database models."""

from app.models.user import User
from app.models.repository import Repository
from app.models.scheduled_commit import ScheduledCommit
from app.models.audit_log import AuditLog
from app.models.contribution import Contribution

__all__ = [
    "User",
    "Repository",
    "ScheduledCommit",
    "AuditLog",
    "Contribution",
]
