# plate_palette/services/friendship_service.py
"""
Friendship requests and the visibility rule, backed by the `friendships` table.

Rows are (user_id = requester, friend_id = recipient, status). The store
carries a unique index on the unordered pair, so two simultaneous requests
between the same users cannot both land; the loser is reported as a
conflict just like a request caught by the pre-read.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from plate_palette.services import friendship_rules as rules
from plate_palette.services.friendship_rules import FriendshipStatus
from plate_palette.services.store import (
    CONFLICT,
    NOT_AUTHORIZED,
    NOT_FOUND,
    StoreService,
    _fail,
    _make_result,
    _now_iso,
    _rows,
)
from plate_palette.services.user_service import UserService

logger = logging.getLogger(__name__)


class FriendshipService(StoreService):

    def __init__(self, client: Optional[Any], user_service: UserService) -> None:
        super().__init__(client)
        self.user_service = user_service

    # -----------------------
    # Queries
    # -----------------------
    async def _pair_rows(self, a: str, b: str) -> Dict[str, Any]:
        def _fn(ids):
            # both columns within {a, b}; self rows cannot exist
            return (
                self.client.table("friendships")
                .select("*")
                .in_("user_id", ids)
                .in_("friend_id", ids)
                .execute()
            )

        return await self._call_db(_fn, [str(a), str(b)])

    async def get_request(self, request_id: str) -> Dict[str, Any]:
        if self.client is None:
            return self._no_client()

        def _fn(rid):
            return (
                self.client.table("friendships")
                .select("*")
                .eq("id", rid)
                .limit(1)
                .execute()
            )

        res = await self._call_db(_fn, request_id)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(NOT_FOUND, "friend_request_not_found", {"request_id": request_id})
        return _make_result(True, data=rows[0])

    async def _rows_for(self, column: str, user_id: str, status: FriendshipStatus):
        def _fn(col, uid, st):
            return (
                self.client.table("friendships")
                .select("*")
                .eq(col, uid)
                .eq("status", st)
                .execute()
            )

        return await self._call_db(_fn, column, str(user_id), status.value)

    async def list_friend_ids(self, user_id: str) -> Dict[str, Any]:
        """Ids of every user with an accepted friendship with `user_id`."""
        if self.client is None:
            return self._no_client()
        friend_ids: List[str] = []
        for column in ("user_id", "friend_id"):
            res = await self._rows_for(column, user_id, FriendshipStatus.ACCEPTED)
            if not res["ok"]:
                return res
            for row in _rows(res["data"]):
                friend_ids.append(str(rules.other_party(row, user_id)))
        return _make_result(True, data=list(dict.fromkeys(friend_ids)))

    async def are_friends(self, a: str, b: str) -> Dict[str, Any]:
        if self.client is None:
            return self._no_client()
        res = await self._pair_rows(a, b)
        if not res["ok"]:
            return res
        visible = any(rules.grants_visibility(row, a, b) for row in _rows(res["data"]))
        return _make_result(True, data=visible)

    async def require_visibility(self, viewer_id: str, subject_id: str) -> Optional[Dict[str, Any]]:
        """
        None when `viewer_id` may read `subject_id`'s progress, else a failure
        result (not_authorized, or the upstream error that prevented the check).
        """
        if str(viewer_id) == str(subject_id):
            return None
        res = await self.are_friends(viewer_id, subject_id)
        if not res["ok"]:
            return res
        if not res["data"]:
            logger.warning("Visibility denied: viewer=%s subject=%s", viewer_id, subject_id)
            return _fail(NOT_AUTHORIZED, "not_friends", {"subject_id": subject_id})
        return None

    async def _pending_with_party(self, user_id: str, column: str, party_column: str, label: str):
        if self.client is None:
            return self._no_client()
        res = await self._rows_for(column, user_id, FriendshipStatus.PENDING)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        users = await self.user_service.get_users(row[party_column] for row in rows)
        if not users["ok"]:
            return users
        emails = {str(u["id"]): u.get("email") for u in users["data"]}
        data = [{**row, label: emails.get(str(row[party_column]))} for row in rows]
        return _make_result(True, data=data)

    async def list_incoming_requests(self, user_id: str) -> Dict[str, Any]:
        return await self._pending_with_party(user_id, "friend_id", "user_id", "requester_email")

    async def list_sent_requests(self, user_id: str) -> Dict[str, Any]:
        return await self._pending_with_party(user_id, "user_id", "friend_id", "friend_email")

    # -----------------------
    # Transitions
    # -----------------------
    async def request(self, requester_id: str, recipient_id: str) -> Dict[str, Any]:
        logger.info("friend request %s -> %s", requester_id, recipient_id)
        violation = rules.check_request(requester_id, recipient_id, [])
        if violation:
            return _fail(*violation)
        if self.client is None:
            return self._no_client()

        existing = await self._pair_rows(requester_id, recipient_id)
        if not existing["ok"]:
            return existing
        violation = rules.check_request(requester_id, recipient_id, _rows(existing["data"]))
        if violation:
            logger.warning(
                "friend request %s -> %s rejected: %s", requester_id, recipient_id, violation[1]
            )
            return _fail(*violation)

        row = {
            "user_id": str(requester_id),
            "friend_id": str(recipient_id),
            "status": FriendshipStatus.PENDING.value,
            "requested_at": _now_iso(),
        }

        def _fn(data):
            return self.client.table("friendships").insert(data).execute()

        res = await self._call_db(_fn, row)
        if not res["ok"]:
            if res.get("error_kind") == CONFLICT:
                return _fail(CONFLICT, "friendship_exists", res["diagnostics"])
            return res
        created = _rows(res["data"])
        return _make_result(True, data=created[0] if created else row)

    async def request_by_email(self, requester_id: str, email: str) -> Dict[str, Any]:
        found = await self.user_service.find_user_by_email(email)
        if not found["ok"]:
            return found
        return await self.request(requester_id, found["data"]["id"])

    async def respond(self, actor_id: str, request_id: str, accept: bool) -> Dict[str, Any]:
        found = await self.get_request(request_id)
        if not found["ok"]:
            return found
        violation = rules.check_response(actor_id, found["data"])
        if violation:
            logger.warning(
                "respond to %s by %s rejected: %s", request_id, actor_id, violation[1]
            )
            return _fail(*violation, {"request_id": request_id})

        patch = {
            "status": rules.next_status(accept).value,
            "responded_at": _now_iso(),
        }

        def _fn(rid, uid, data):
            # conditional on still being pending and addressed to the actor
            return (
                self.client.table("friendships")
                .update(data)
                .eq("id", rid)
                .eq("friend_id", uid)
                .eq("status", FriendshipStatus.PENDING.value)
                .execute()
            )

        res = await self._call_db(_fn, request_id, str(actor_id), patch)
        if not res["ok"]:
            return res
        rows = _rows(res["data"])
        if not rows:
            return _fail(CONFLICT, "request_not_pending", {"request_id": request_id})
        logger.info("friend request %s -> %s by %s", request_id, patch["status"], actor_id)
        return _make_result(True, data=rows[0])
