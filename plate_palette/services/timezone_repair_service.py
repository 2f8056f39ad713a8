# plate_palette/services/timezone_repair_service.py
"""
Corrective pass over stored food logs.

Recomputes `logged_date` (and `week_starting_date`) from `logged_at` under a
single named zone and updates the rows that disagree. Uses the same
local-date helper as new writes, so after a pass with the default zone the
two agree for every user without a stored zone of their own.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from plate_palette.services.store import VALIDATION, StoreService, _fail, _make_result, _rows
from plate_palette.services.week_window import local_date, resolve_timezone, week_window

logger = logging.getLogger(__name__)


class TimezoneRepairService(StoreService):

    async def _all_logs(self) -> Dict[str, Any]:
        def _fn():
            return (
                self.client.table("food_logs")
                .select("*")
                .order("logged_at", desc=True)
                .execute()
            )

        return await self._call_db(_fn)

    async def run(self, zone_name: str, dry_run: bool = False) -> Dict[str, Any]:
        """
        Returns {"total", "updated", "unchanged", "failed", "changes": [...]}.
        A failed single update is logged and counted; the pass continues.
        """
        try:
            resolve_timezone(zone_name)
        except ValueError:
            return _fail(VALIDATION, "unknown_timezone", {"timezone": zone_name})
        if self.client is None:
            return self._no_client()

        res = await self._all_logs()
        if not res["ok"]:
            return res
        logs = _rows(res["data"])
        logger.info("Timezone repair: %d food logs to check (zone=%s)", len(logs), zone_name)

        changes: List[Dict[str, Any]] = []
        updated = unchanged = failed = 0
        for log in logs:
            try:
                correct = local_date(log["logged_at"], zone_name)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping food log %s with unreadable logged_at", log.get("id"))
                failed += 1
                continue

            patch: Dict[str, Optional[str]] = {}
            if log.get("logged_date") != correct.isoformat():
                patch["logged_date"] = correct.isoformat()
            week_start = week_window(correct).week_starting_date
            if log.get("week_starting_date") != week_start:
                patch["week_starting_date"] = week_start
            if not patch:
                unchanged += 1
                continue

            change = {
                "id": log.get("id"),
                "food_name": log.get("food_name"),
                "logged_at": log.get("logged_at"),
                "current_date": log.get("logged_date"),
                **patch,
            }
            logger.info(
                "Updating %s: %s -> %s (logged_at %s)",
                log.get("food_name"),
                log.get("logged_date"),
                correct.isoformat(),
                log.get("logged_at"),
            )
            if dry_run:
                changes.append(change)
                updated += 1
                continue

            upd = await self._update(log["id"], patch)
            if upd["ok"]:
                changes.append(change)
                updated += 1
            else:
                logger.error("Error updating log %s: %s", log.get("id"), upd.get("error"))
                failed += 1

        summary = {
            "total": len(logs),
            "updated": updated,
            "unchanged": unchanged,
            "failed": failed,
            "dry_run": dry_run,
            "changes": changes,
        }
        logger.info(
            "Timezone repair complete: total=%d updated=%d unchanged=%d failed=%d",
            len(logs),
            updated,
            unchanged,
            failed,
        )
        return _make_result(True, data=summary)

    async def _update(self, log_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        def _fn(lid, data):
            return self.client.table("food_logs").update(data).eq("id", lid).execute()

        return await self._call_db(_fn, log_id, patch)
