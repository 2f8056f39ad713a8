# plate_palette/services/user_service.py
"""
User profile operations using Supabase.

Users are created by the auth layer at signup; this service reads profiles,
resolves the authoritative timezone / weekly goal for a user, and applies
owner-initiated profile updates (first name, weekly goal, timezone).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from plate_palette.config.settings import Settings
from plate_palette.services.store import (
    NOT_FOUND,
    VALIDATION,
    StoreService,
    _fail,
    _make_result,
    _now_iso,
    _rows,
)
from plate_palette.services.week_window import resolve_timezone

logger = logging.getLogger(__name__)

MIN_WEEKLY_GOAL = 5
MAX_WEEKLY_GOAL = 100

PUBLIC_USER_FIELDS = "id, email, username, first_name, weekly_goal"

_UNSET: Any = object()


def validate_weekly_goal(goal: Any) -> Optional[str]:
    """Return an error code, or None when `goal` is acceptable."""
    if isinstance(goal, bool) or not isinstance(goal, int):
        return "weekly_goal_not_integer"
    if goal < MIN_WEEKLY_GOAL or goal > MAX_WEEKLY_GOAL:
        return "weekly_goal_out_of_range"
    return None


class UserService(StoreService):

    def __init__(self, client: Optional[Any], settings: Settings) -> None:
        super().__init__(client)
        self.settings = settings

    # -----------------------
    # Derived values
    # -----------------------
    def timezone_for(self, user: Optional[Dict[str, Any]]) -> str:
        """The user's stored zone when valid, else the configured default."""
        name = (user or {}).get("timezone")
        if name:
            try:
                resolve_timezone(name)
                return name
            except ValueError:
                logger.warning(
                    "User %s has invalid timezone %r; using default",
                    (user or {}).get("id"),
                    name,
                )
        return self.settings.default_timezone

    def weekly_goal_for(self, user: Optional[Dict[str, Any]]) -> int:
        goal = (user or {}).get("weekly_goal")
        if validate_weekly_goal(goal) is None:
            return goal
        return self.settings.default_weekly_goal

    # -----------------------
    # Reads
    # -----------------------
    async def get_user(self, user_id: str) -> Dict[str, Any]:
        logger.debug("get_user: %s", user_id)
        if self.client is None:
            return self._no_client()

        def _fn(uid):
            return self.client.table("users").select("*").eq("id", uid).limit(1).execute()

        res = await self._call_db(_fn, user_id)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(NOT_FOUND, "user_not_found", {"user_id": user_id})
        return _make_result(True, data=rows[0], diagnostics=res["diagnostics"])

    async def get_users(self, user_ids) -> Dict[str, Any]:
        ids = list(dict.fromkeys(str(u) for u in user_ids))
        if not ids:
            return _make_result(True, data=[])
        if self.client is None:
            return self._no_client()

        def _fn(uids):
            return (
                self.client.table("users")
                .select(PUBLIC_USER_FIELDS)
                .in_("id", uids)
                .execute()
            )

        res = await self._call_db(_fn, ids)
        if not res["ok"]:
            return res
        return _make_result(True, data=_rows(res["data"]), diagnostics=res["diagnostics"])

    async def find_user_by_email(self, email: str) -> Dict[str, Any]:
        normalized = (email or "").strip().lower()
        if not normalized or "@" not in normalized:
            return _fail(VALIDATION, "invalid_email")
        if self.client is None:
            return self._no_client()

        def _fn(addr):
            return (
                self.client.table("users")
                .select(PUBLIC_USER_FIELDS)
                .eq("email", addr)
                .limit(1)
                .execute()
            )

        res = await self._call_db(_fn, normalized)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(NOT_FOUND, "user_not_found")
        return _make_result(True, data=rows[0], diagnostics=res["diagnostics"])

    # -----------------------
    # Writes
    # -----------------------
    async def update_profile(
        self,
        user_id: str,
        first_name: Any = _UNSET,
        weekly_goal: Any = _UNSET,
        timezone: Any = _UNSET,
    ) -> Dict[str, Any]:
        """
        Update the owner's profile. Every field is validated before any write;
        a blank first name clears it.
        """
        patch: Dict[str, Any] = {}

        if weekly_goal is not _UNSET and weekly_goal is not None:
            error = validate_weekly_goal(weekly_goal)
            if error:
                return _fail(VALIDATION, error, {"min": MIN_WEEKLY_GOAL, "max": MAX_WEEKLY_GOAL})
            patch["weekly_goal"] = weekly_goal

        if timezone is not _UNSET and timezone is not None:
            try:
                resolve_timezone(timezone)
            except ValueError:
                return _fail(VALIDATION, "unknown_timezone", {"timezone": timezone})
            patch["timezone"] = str(timezone).strip()

        if first_name is not _UNSET:
            patch["first_name"] = (first_name or "").strip() or None

        if not patch:
            return _fail(VALIDATION, "nothing_to_update")
        if self.client is None:
            return self._no_client()

        patch["updated_at"] = _now_iso()
        logger.info("update_profile user_id=%s keys=%s", user_id, sorted(patch))

        def _fn(uid, data):
            return self.client.table("users").update(data).eq("id", uid).execute()

        res = await self._call_db(_fn, user_id, patch)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(NOT_FOUND, "user_not_found", {"user_id": user_id})
        return _make_result(True, data=rows[0], diagnostics=res["diagnostics"])
