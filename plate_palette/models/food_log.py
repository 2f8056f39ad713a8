"""
Food log model: one row per food a user logged on a local calendar day.
"""
import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from plate_palette.models.database import Base


class FoodLog(Base):
    __tablename__ = "food_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    fdc_id = Column(Integer, nullable=False)  # USDA FoodData Central id
    food_name = Column(String, nullable=False)
    food_data_type = Column(String, nullable=True)  # SR_Legacy, Branded, ...
    food_nutrients = Column(JSONB, nullable=True)
    logged_date = Column(Date, nullable=False)  # local calendar day of logged_at
    week_starting_date = Column(Date, nullable=False)  # Monday of logged_date's week
    logged_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationship
    user = relationship("User", back_populates="food_logs")

    __table_args__ = (
        UniqueConstraint("user_id", "fdc_id", "week_starting_date", name="uq_food_logs_user_food_week"),
        Index("ix_food_logs_user_logged_date", "user_id", "logged_date"),
    )

    def __repr__(self):
        return f"<FoodLog(user_id={self.user_id}, fdc_id={self.fdc_id}, logged_date='{self.logged_date}')>"
