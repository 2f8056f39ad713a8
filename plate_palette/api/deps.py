# plate_palette/api/deps.py
"""
FastAPI dependencies: service handles, the authenticated user, and the
translation of service results into HTTP responses.

Client handles are built once in the application lifespan (see main.py)
and live on `app.state`; nothing here constructs a client per request.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Header, HTTPException, Request

from plate_palette.config.settings import Settings
from plate_palette.services.catalog_client import CatalogClient
from plate_palette.services.food_log_service import FoodLogService
from plate_palette.services.friends_overview_service import FriendsOverviewService
from plate_palette.services.friendship_service import FriendshipService
from plate_palette.services.reaction_service import ReactionService
from plate_palette.services.store import CONFLICT, NOT_AUTHORIZED, NOT_FOUND, UPSTREAM, VALIDATION
from plate_palette.services.user_service import UserService

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    VALIDATION: 422,
    CONFLICT: 409,
    NOT_AUTHORIZED: 403,
    NOT_FOUND: 404,
    UPSTREAM: 502,
}


@dataclass
class Services:
    users: UserService
    friendships: FriendshipService
    food_logs: FoodLogService
    reactions: ReactionService
    friends_overview: FriendsOverviewService
    catalog: CatalogClient


def build_services(
    client: Optional[Any],
    settings: Settings,
    catalog: Optional[CatalogClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Services:
    users = UserService(client, settings)
    friendships = FriendshipService(client, users)
    food_logs = FoodLogService(client, users, friendships, clock=clock)
    reactions = ReactionService(client, users, friendships, clock=clock)
    return Services(
        users=users,
        friendships=friendships,
        food_logs=food_logs,
        reactions=reactions,
        friends_overview=FriendsOverviewService(users, friendships, food_logs, reactions),
        catalog=catalog or CatalogClient(settings),
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail={"error": "services_not_ready"})
    return services


async def get_current_user_id(
    request: Request, authorization: Optional[str] = Header(default=None)
) -> str:
    """Resolve the bearer token to a user id through Supabase auth."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail={"error": "missing_bearer_token"})
    token = authorization.split(" ", 1)[1].strip()

    wrapper = getattr(request.app.state, "supabase", None)
    client = getattr(wrapper, "client", None)
    if client is None:
        raise HTTPException(status_code=503, detail={"error": "no_supabase_client"})

    try:
        resp = await asyncio.to_thread(client.auth.get_user, token)
    except Exception as exc:
        logger.warning("Token rejected by auth provider: %s", type(exc).__name__)
        raise HTTPException(status_code=401, detail={"error": "invalid_token"}) from exc

    user = getattr(resp, "user", None)
    user_id = getattr(user, "id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail={"error": "invalid_token"})
    return str(user_id)


def unwrap(result: Dict[str, Any]) -> Any:
    """Return result["data"] or raise the HTTPException matching its error kind."""
    if result.get("ok"):
        return result.get("data")
    status = STATUS_BY_KIND.get(result.get("error_kind"), 500)
    raise HTTPException(
        status_code=status,
        detail={"error": result.get("error"), "diagnostics": result.get("diagnostics", {})},
    )
