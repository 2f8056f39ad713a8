# plate_palette/services/food_log_service.py
"""
Food logging and weekly progress, backed by the `food_logs` table.

Dates are stamped here, never taken from the client: `logged_at` is the
current UTC instant, `logged_date` its calendar day in the user's zone and
`week_starting_date` the Monday of that day's week. The store holds a unique
constraint on (user_id, fdc_id, week_starting_date), so a duplicate that
slips past the pre-read (a concurrent insert) still surfaces as a conflict.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from plate_palette.services import variety_tracker as variety
from plate_palette.services.catalog_client import FoodRecord
from plate_palette.services.friendship_service import FriendshipService
from plate_palette.services.nutrient_ranker import parse_nutrients, top_significant_nutrients
from plate_palette.services.store import (
    CONFLICT,
    NOT_AUTHORIZED,
    NOT_FOUND,
    VALIDATION,
    StoreService,
    _fail,
    _make_result,
    _rows,
)
from plate_palette.services.user_service import UserService
from plate_palette.services.week_window import (
    WEEKDAY_NAMES,
    WeekWindow,
    current_week_window,
    local_date,
    week_window,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FoodLogService(StoreService):

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
        self.clock = clock or _utc_now

    # -----------------------
    # Helpers
    # -----------------------
    def window_for(self, user: Dict[str, Any], reference: Any = None) -> WeekWindow:
        """This week in the user's zone, or the week containing `reference` (a date or an instant)."""
        tz_name = self.user_service.timezone_for(user)
        if reference is None:
            return current_week_window(tz_name, self.clock())
        return week_window(reference, tz_name)

    def _build_row(self, user: Dict[str, Any], food: FoodRecord, now: datetime) -> Dict[str, Any]:
        tz_name = self.user_service.timezone_for(user)
        day = local_date(now, tz_name)
        return {
            "user_id": str(user["id"]),
            "fdc_id": food.fdc_id,
            "food_name": food.description,
            "food_data_type": food.data_type,
            "food_nutrients": [n.model_dump(mode="json") for n in food.nutrients],
            "logged_date": day.isoformat(),
            "week_starting_date": week_window(day).week_starting_date,
            "logged_at": now.isoformat(),
        }

    async def get_week_logs(
        self, user_id: str, window: WeekWindow, fdc_ids: Optional[Iterable[int]] = None
    ) -> Dict[str, Any]:
        """The user's entries inside `window`, newest first."""
        if self.client is None:
            return self._no_client()
        ids = list(fdc_ids) if fdc_ids is not None else None

        def _fn(uid, start, end, food_ids):
            qb = (
                self.client.table("food_logs")
                .select("*")
                .eq("user_id", uid)
                .gte("logged_date", start)
                .lte("logged_date", end)
            )
            if food_ids is not None:
                qb = qb.in_("fdc_id", food_ids)
            return qb.order("logged_at", desc=True).execute()

        res = await self._call_db(
            _fn, str(user_id), window.week_starting_date, window.week_ending_date, ids
        )
        if not res["ok"]:
            return res
        return _make_result(True, data=_rows(res["data"]), diagnostics=window.as_dict())

    async def _insert(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        def _fn(data):
            return self.client.table("food_logs").insert(data).execute()

        return await self._call_db(_fn, rows)

    # -----------------------
    # Logging
    # -----------------------
    async def log_food(self, user_id: str, food: FoodRecord) -> Dict[str, Any]:
        """
        Log one food for today. A food already logged this week is reported
        as a conflict ("already_logged_this_week") and nothing is written.
        """
        user_res = await self.user_service.get_user(user_id)
        if not user_res["ok"]:
            return user_res
        user = user_res["data"]
        now = self.clock()
        window = self.window_for(user, now)

        existing = await self.get_week_logs(user_id, window, [food.fdc_id])
        if not existing["ok"]:
            return existing
        if existing["data"]:
            logger.info("log_food: %s already logged fdc_id=%s this week", user_id, food.fdc_id)
            return _fail(
                CONFLICT,
                "already_logged_this_week",
                {"food_name": food.description, "existing": existing["data"], **window.as_dict()},
            )

        row = self._build_row(user, food, now)
        res = await self._insert([row])
        if not res["ok"]:
            if res.get("error_kind") == CONFLICT:
                return _fail(
                    CONFLICT,
                    "already_logged_this_week",
                    {"food_name": food.description, **window.as_dict()},
                )
            return res
        created = _rows(res["data"])
        logger.info("log_food: user=%s fdc_id=%s date=%s", user_id, food.fdc_id, row["logged_date"])
        return _make_result(True, data=created[0] if created else row, diagnostics=window.as_dict())

    async def log_foods(self, user_id: str, foods: List[FoodRecord]) -> Dict[str, Any]:
        """
        Batch log. Duplicates within the batch and against this week's stored
        entries are reported under "already_logged"; only the novel subset is
        written. When nothing is novel the whole call is a conflict.

        data: {"logged": [rows], "already_logged": [foods], "failed": [{food, error}]}
        """
        if not foods:
            return _fail(VALIDATION, "no_foods")
        user_res = await self.user_service.get_user(user_id)
        if not user_res["ok"]:
            return user_res
        user = user_res["data"]
        now = self.clock()
        window = self.window_for(user, now)

        existing = await self.get_week_logs(user_id, window, {f.fdc_id for f in foods})
        if not existing["ok"]:
            return existing

        candidates = [f.model_dump() for f in foods]
        novel, duplicates = variety.partition_new_foods(candidates, existing["data"], window)
        already_logged = [{"fdc_id": d["fdc_id"], "food_name": d["description"]} for d in duplicates]

        if not novel:
            return _fail(
                CONFLICT,
                "already_logged_this_week",
                {"already_logged": already_logged, **window.as_dict()},
            )

        by_id: Dict[int, FoodRecord] = {}
        for f in foods:
            by_id.setdefault(f.fdc_id, f)
        rows = [self._build_row(user, by_id[c["fdc_id"]], now) for c in novel]
        res = await self._insert(rows)

        logged: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []
        if res["ok"]:
            logged = _rows(res["data"]) or rows
        elif res.get("error_kind") == CONFLICT:
            # a concurrent writer got there first; settle item by item
            logger.warning("log_foods: bulk insert conflicted, retrying per item for %s", user_id)
            for row in rows:
                single = await self._insert([row])
                if single["ok"]:
                    logged.extend(_rows(single["data"]) or [row])
                elif single.get("error_kind") == CONFLICT:
                    already_logged.append({"fdc_id": row["fdc_id"], "food_name": row["food_name"]})
                else:
                    failed.append({"fdc_id": row["fdc_id"], "error": single.get("error")})
        else:
            return res

        logger.info(
            "log_foods: user=%s logged=%d already=%d failed=%d",
            user_id,
            len(logged),
            len(already_logged),
            len(failed),
        )
        data = {"logged": logged, "already_logged": already_logged, "failed": failed}
        if not logged and not failed:
            return _fail(CONFLICT, "already_logged_this_week", {**data, **window.as_dict()})
        return _make_result(True, data=data, diagnostics=window.as_dict())

    async def get_food_log(self, viewer_id: str, log_id: str) -> Dict[str, Any]:
        """A single entry, readable by its owner and the owner's accepted friends."""
        if self.client is None:
            return self._no_client()

        def _fn(lid):
            return self.client.table("food_logs").select("*").eq("id", lid).limit(1).execute()

        res = await self._call_db(_fn, log_id)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(NOT_FOUND, "food_log_not_found", {"log_id": log_id})
        denied = await self.friendship_service.require_visibility(viewer_id, rows[0]["user_id"])
        if denied:
            return denied
        return _make_result(True, data=rows[0])

    async def food_highlights(self, viewer_id: str, log_id: str) -> Dict[str, Any]:
        found = await self.get_food_log(viewer_id, log_id)
        if not found["ok"]:
            return found
        highlights = top_significant_nutrients(parse_nutrients(found["data"].get("food_nutrients")))
        return _make_result(True, data=[h.as_dict() for h in highlights])

    async def delete_food_log(self, user_id: str, log_id: str) -> Dict[str, Any]:
        if self.client is None:
            return self._no_client()

        def _get(lid):
            return self.client.table("food_logs").select("id, user_id").eq("id", lid).limit(1).execute()

        res = await self._call_db(_get, log_id)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(NOT_FOUND, "food_log_not_found", {"log_id": log_id})
        if str(rows[0]["user_id"]) != str(user_id):
            logger.warning("delete_food_log: %s tried to delete %s", user_id, log_id)
            return _fail(NOT_AUTHORIZED, "not_log_owner", {"log_id": log_id})

        def _delete(lid, uid):
            return self.client.table("food_logs").delete().eq("id", lid).eq("user_id", uid).execute()

        res = await self._call_db(_delete, log_id, str(user_id))
        if not res["ok"]:
            return res
        logger.info("delete_food_log: user=%s log=%s", user_id, log_id)
        return _make_result(True, data={"deleted": log_id})

    # -----------------------
    # Progress
    # -----------------------
    async def week_summary(
        self, subject: Dict[str, Any], window: WeekWindow
    ) -> Dict[str, Any]:
        logs = await self.get_week_logs(subject["id"], window)
        if not logs["ok"]:
            return logs
        summary = variety.track_variety(
            logs["data"], window, self.user_service.weekly_goal_for(subject)
        )
        return _make_result(True, data={"summary": summary, "logs": logs["data"]})

    async def weekly_progress(
        self, viewer_id: str, subject_id: Optional[str] = None, reference: Any = None
    ) -> Dict[str, Any]:
        """
        Variety progress of `subject_id` (default: the viewer) for the viewer's
        current week, or the week containing `reference`.
        """
        subject_id = subject_id or viewer_id
        denied = await self.friendship_service.require_visibility(viewer_id, subject_id)
        if denied:
            return denied

        viewer_res = await self.user_service.get_user(viewer_id)
        if not viewer_res["ok"]:
            return viewer_res
        if str(subject_id) == str(viewer_id):
            subject = viewer_res["data"]
        else:
            subject_res = await self.user_service.get_user(subject_id)
            if not subject_res["ok"]:
                return subject_res
            subject = subject_res["data"]

        try:
            window = self.window_for(viewer_res["data"], reference)
        except ValueError as exc:
            return _fail(VALIDATION, "invalid_date", {"reference": str(reference), "message": str(exc)})

        res = await self.week_summary(subject, window)
        if not res["ok"]:
            return res
        summary: variety.VarietySummary = res["data"]["summary"]
        grouped = variety.group_by_day(res["data"]["logs"], window)

        days = [
            {
                "date": day,
                "weekday": WEEKDAY_NAMES[i],
                "foods": [
                    {
                        "id": log.get("id"),
                        "fdc_id": log.get("fdc_id"),
                        "food_name": log.get("food_name"),
                        "logged_at": log.get("logged_at"),
                    }
                    for log in grouped[day]
                ],
            }
            for i, day in enumerate(grouped)
        ]
        data = {
            "user_id": subject["id"],
            **window.as_dict(),
            **summary.as_dict(),
            "days": days,
        }
        return _make_result(True, data=data)
