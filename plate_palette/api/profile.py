"""Profile endpoints: read and update the caller's own profile."""
from fastapi import APIRouter, Depends

from plate_palette.api.deps import Services, get_current_user_id, get_services, unwrap
from plate_palette.api.schemas import ProfileUpdateRequest

router = APIRouter()


@router.get("/me")
async def read_me(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    user = unwrap(await services.users.get_user(user_id))
    return {
        **user,
        "weekly_goal": services.users.weekly_goal_for(user),
        "timezone": services.users.timezone_for(user),
    }


@router.patch("/me")
async def update_me(
    body: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    # only fields present in the body are touched
    fields = body.model_dump(include=body.model_fields_set)
    return unwrap(await services.users.update_profile(user_id, **fields))
