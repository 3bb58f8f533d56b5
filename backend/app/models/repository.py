"""Repository model for GitHub repositories targeted by commits."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Repository(Base):
    """A GitHub repository owned by (or accessible to) a user."""

    __tablename__ = "repositories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)  # Full name: 'owner/name'
    url = Column(String(500), nullable=False)
    is_private = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="repositories")
    scheduled_commits = relationship("ScheduledCommit", back_populates="repository", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_repositories_user_name"),
    )

    @property
    def owner_and_name(self):
        owner, _, repo = self.name.partition("/")
        return owner, repo

    def __repr__(self):
        return f"<Repository(id={self.id}, name='{self.name}')>"
