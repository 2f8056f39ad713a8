# plate_palette/services/friendship_rules.py
r"""
Friendship state machine.

    (none) --request--> pending --accept--> accepted
                               \--reject--> rejected

One row per unordered pair of users. Rejected rows are kept and, like
pending and accepted rows, block any new request between the pair. Only the
recipient may answer a pending request.

Checks return an (error_kind, error_code) pair or None when the transition
is allowed, so the store-backed service can wrap them in its result shape.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

Violation = Optional[Tuple[str, str]]


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


_EXISTING_STATUS_ERRORS = {
    FriendshipStatus.PENDING: "friend_request_pending",
    FriendshipStatus.ACCEPTED: "already_friends",
    FriendshipStatus.REJECTED: "friend_request_rejected",
}


def pair_key(a: str, b: str) -> Tuple[str, str]:
    """Order-independent key for a pair of user ids."""
    a, b = str(a), str(b)
    return (a, b) if a <= b else (b, a)


def status_of(row: Dict[str, Any]) -> Optional[FriendshipStatus]:
    try:
        return FriendshipStatus(row.get("status"))
    except ValueError:
        return None


def check_request(
    requester_id: str, recipient_id: str, existing: Iterable[Dict[str, Any]]
) -> Violation:
    if not requester_id or not recipient_id:
        return ("validation", "user_id_required")
    if str(requester_id) == str(recipient_id):
        return ("validation", "self_friend_request")
    wanted = pair_key(requester_id, recipient_id)
    for row in existing:
        if pair_key(row.get("user_id"), row.get("friend_id")) != wanted:
            continue
        status = status_of(row)
        return ("conflict", _EXISTING_STATUS_ERRORS.get(status, "friendship_exists"))
    return None


def check_response(actor_id: str, row: Dict[str, Any]) -> Violation:
    if str(row.get("friend_id")) != str(actor_id):
        return ("not_authorized", "not_request_recipient")
    if status_of(row) != FriendshipStatus.PENDING:
        return ("conflict", "request_not_pending")
    return None


def next_status(accept: bool) -> FriendshipStatus:
    return FriendshipStatus.ACCEPTED if accept else FriendshipStatus.REJECTED


def grants_visibility(row: Dict[str, Any], a: str, b: str) -> bool:
    """True when `row` is an accepted friendship between a and b, either direction."""
    return (
        status_of(row) == FriendshipStatus.ACCEPTED
        and pair_key(row.get("user_id"), row.get("friend_id")) == pair_key(a, b)
    )


def other_party(row: Dict[str, Any], user_id: str) -> str:
    return row["friend_id"] if str(row.get("user_id")) == str(user_id) else row["user_id"]
