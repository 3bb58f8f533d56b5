"""Contribution model: daily contribution counts synced from GitHub."""

from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Contribution(Base):
    """Number of contributions a user made on one calendar day."""

    __tablename__ = "contributions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="contributions")

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_contributions_user_date"),
    )

    def __repr__(self):
        return f"<Contribution(user_id={self.user_id}, date={self.date}, count={self.count})>"
