# plate_palette/services/reaction_service.py
"""
Weekly emoji reactions, backed by the `weekly_reactions` table.

One slot per (from_user_id, to_user_id, week_starting_date); reacting again
in the same week overwrites the emoji in place. Rows are never deleted, but
only the current week's reactions are surfaced.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from plate_palette.services.friendship_service import FriendshipService
from plate_palette.services.store import (
    VALIDATION,
    StoreService,
    _fail,
    _make_result,
    _now_iso,
    _rows,
)
from plate_palette.services.user_service import UserService
from plate_palette.services.week_window import current_week_window, parse_date, week_window

logger = logging.getLogger(__name__)

REACTION_EMOJIS = ("🍎", "🥕", "🥦", "🍇", "🍓", "🍊", "🥬", "🍅", "🫐", "🥑")

REACTION_KEY = "from_user_id,to_user_id,week_starting_date"


class ReactionService(StoreService):

    def __init__(
        self,
        client: Optional[Any],
        user_service: UserService,
        friendship_service: FriendshipService,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(client)
        self.user_service = user_service
        self.friendship_service = friendship_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def _current_week_start(self, user_id: str) -> Dict[str, Any]:
        user = await self.user_service.get_user(user_id)
        if not user["ok"]:
            return user
        tz_name = self.user_service.timezone_for(user["data"])
        window = current_week_window(tz_name, self.clock())
        return _make_result(True, data=window.week_starting_date)

    async def react(
        self,
        observer_id: str,
        subject_id: str,
        emoji: str,
        week_start: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Upsert the observer's reaction to the subject for the week containing
        `week_start` (default: the observer's current week).
        Requires an accepted friendship.
        """
        emoji = (emoji or "").strip()
        if emoji not in REACTION_EMOJIS:
            return _fail(VALIDATION, "unknown_emoji", {"allowed": list(REACTION_EMOJIS)})
        if str(observer_id) == str(subject_id):
            return _fail(VALIDATION, "self_reaction")
        if self.client is None:
            return self._no_client()

        denied = await self.friendship_service.require_visibility(observer_id, subject_id)
        if denied:
            return denied

        if week_start is None:
            week = await self._current_week_start(observer_id)
            if not week["ok"]:
                return week
            week_start = week["data"]
        else:
            try:
                week_start = week_window(parse_date(week_start)).week_starting_date
            except ValueError:
                return _fail(VALIDATION, "invalid_week_start", {"week_start": week_start})

        now = _now_iso()
        row = {
            "from_user_id": str(observer_id),
            "to_user_id": str(subject_id),
            "week_starting_date": week_start,
            "emoji": emoji,
            "updated_at": now,
        }

        def _fn(data):
            # single conditional write on the unique key: insert or overwrite
            return (
                self.client.table("weekly_reactions")
                .upsert(data, on_conflict=REACTION_KEY)
                .execute()
            )

        res = await self._call_db(_fn, row)
        if not res["ok"]:
            return res
        saved = _rows(res["data"])
        logger.info(
            "reaction %s -> %s week=%s emoji=%s", observer_id, subject_id, week_start, emoji
        )
        return _make_result(True, data=saved[0] if saved else row)

    async def reaction_for(
        self, observer_id: str, subject_id: str, week_start: str
    ) -> Dict[str, Any]:
        """The observer's reaction to the subject for `week_start`, or None."""
        if self.client is None:
            return self._no_client()

        def _fn(frm, to, week):
            return (
                self.client.table("weekly_reactions")
                .select("*")
                .eq("from_user_id", frm)
                .eq("to_user_id", to)
                .eq("week_starting_date", week)
                .limit(1)
                .execute()
            )

        res = await self._call_db(_fn, str(observer_id), str(subject_id), week_start)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        return _make_result(True, data=rows[0] if rows else None)

    async def reactions_received(self, subject_id: str) -> Dict[str, Any]:
        """Reactions sent to the subject for the subject's current week only."""
        if self.client is None:
            return self._no_client()
        week = await self._current_week_start(subject_id)
        if not week["ok"]:
            return week

        def _fn(to, start):
            return (
                self.client.table("weekly_reactions")
                .select("*")
                .eq("to_user_id", to)
                .eq("week_starting_date", start)
                .execute()
            )

        res = await self._call_db(_fn, str(subject_id), week["data"])
        if not res["ok"]:
            return res
        return _make_result(
            True, data=_rows(res["data"]), diagnostics={"week_starting_date": week["data"]}
        )
