"""Database models for the weekly variety tracker."""
from plate_palette.models.database import Base, create_schema, get_engine
from plate_palette.models.user import User
from plate_palette.models.food_log import FoodLog
from plate_palette.models.friendship import Friendship
from plate_palette.models.weekly_reaction import WeeklyReaction

# Export all models
__all__ = [
    "User",
    "FoodLog",
    "Friendship",
    "WeeklyReaction",
    "Base",
    "create_schema",
    "get_engine",
]
