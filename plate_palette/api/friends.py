"""
Friends endpoints: requests, responses, friends' progress and reactions.

Reading another user's progress, or reacting to it, requires an accepted
friendship; the services enforce that and these handlers only translate.
"""
from fastapi import APIRouter, Depends

from plate_palette.api.deps import Services, get_current_user_id, get_services, unwrap
from plate_palette.api.schemas import FriendRequestBody, ReactionRequest, RespondRequest

router = APIRouter()


@router.get("/friends")
async def list_friends(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.friends_overview.list_friends_progress(user_id))


@router.get("/friends/requests/incoming")
async def incoming_requests(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.friendships.list_incoming_requests(user_id))


@router.get("/friends/requests/sent")
async def sent_requests(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.friendships.list_sent_requests(user_id))


@router.post("/friends/requests", status_code=201)
async def send_request(
    body: FriendRequestBody,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    if body.email:
        return unwrap(await services.friendships.request_by_email(user_id, body.email))
    return unwrap(await services.friendships.request(user_id, body.user_id))


@router.post("/friends/requests/{request_id}/respond")
async def respond_to_request(
    request_id: str,
    body: RespondRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.friendships.respond(user_id, request_id, body.accept))


@router.get("/friends/{friend_id}/progress")
async def friend_progress(
    friend_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.food_logs.weekly_progress(user_id, friend_id))


@router.put("/friends/{friend_id}/reaction")
async def react_to_friend(
    friend_id: str,
    body: ReactionRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.reactions.react(user_id, friend_id, body.emoji))


@router.get("/reactions/received")
async def reactions_received(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.reactions.reactions_received(user_id))
