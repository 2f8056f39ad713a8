# plate_palette/services/friends_overview_service.py
"""Accepted friends with their progress for the viewer's current week."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from plate_palette.services.food_log_service import FoodLogService
from plate_palette.services.friendship_service import FriendshipService
from plate_palette.services.reaction_service import ReactionService
from plate_palette.services.store import _make_result
from plate_palette.services.user_service import UserService

logger = logging.getLogger(__name__)


class FriendsOverviewService:

    def __init__(
        self,
        user_service: UserService,
        friendship_service: FriendshipService,
        food_log_service: FoodLogService,
        reaction_service: ReactionService,
    ) -> None:
        self.user_service = user_service
        self.friendship_service = friendship_service
        self.food_log_service = food_log_service
        self.reaction_service = reaction_service

    async def list_friends_progress(self, viewer_id: str) -> Dict[str, Any]:
        viewer = await self.user_service.get_user(viewer_id)
        if not viewer["ok"]:
            return viewer
        window = self.food_log_service.window_for(viewer["data"])

        ids = await self.friendship_service.list_friend_ids(viewer_id)
        if not ids["ok"]:
            return ids
        friends = await self.user_service.get_users(ids["data"])
        if not friends["ok"]:
            return friends

        out: List[Dict[str, Any]] = []
        for friend in friends["data"]:
            summary = await self.food_log_service.week_summary(friend, window)
            if not summary["ok"]:
                return summary
            reaction = await self.reaction_service.reaction_for(
                viewer_id, friend["id"], window.week_starting_date
            )
            if not reaction["ok"]:
                return reaction
            progress = summary["data"]["summary"]
            out.append(
                {
                    "id": friend["id"],
                    "email": friend.get("email"),
                    "username": friend.get("username"),
                    "first_name": friend.get("first_name"),
                    "weekly_goal": progress.weekly_goal,
                    "foods_count": progress.unique_count,
                    "goal_met": progress.goal_met,
                    "progress_percent": progress.progress_percent,
                    "reaction": reaction["data"],
                }
            )
        logger.debug("list_friends_progress viewer=%s friends=%d", viewer_id, len(out))
        return _make_result(True, data=out, diagnostics=window.as_dict())
