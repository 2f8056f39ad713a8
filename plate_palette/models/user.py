"""
User model for storing profiles and weekly goals.
"""
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from plate_palette.models.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    weekly_goal = Column(Integer, nullable=False, default=20, server_default="20")
    timezone = Column(String, nullable=True)  # IANA name; null means service default
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    food_logs = relationship("FoodLog", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("weekly_goal BETWEEN 5 AND 100", name="ck_users_weekly_goal_range"),
    )

    def __repr__(self):
        return f"<User(email='{self.email}', weekly_goal={self.weekly_goal})>"
