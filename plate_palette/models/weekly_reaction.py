"""
Weekly reaction model: one emoji per (observer, subject, week).
"""
import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from plate_palette.models.database import Base


class WeeklyReaction(Base):
    __tablename__ = "weekly_reactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    from_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    to_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    week_starting_date = Column(Date, nullable=False)
    emoji = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("from_user_id", "to_user_id", "week_starting_date", name="uq_weekly_reactions_slot"),
    )

    def __repr__(self):
        return f"<WeeklyReaction(from={self.from_user_id}, to={self.to_user_id}, emoji='{self.emoji}')>"
