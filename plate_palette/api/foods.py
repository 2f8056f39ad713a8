"""Food logging and weekly progress endpoints."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from plate_palette.api.deps import Services, get_current_user_id, get_services, unwrap
from plate_palette.api.schemas import BatchLogRequest
from plate_palette.services.catalog_client import FoodRecord

router = APIRouter()


@router.get("/week")
async def my_week(
    day: Optional[date] = Query(None, alias="date", description="any day of the wanted week"),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.food_logs.weekly_progress(user_id, reference=day))


@router.post("/logs", status_code=201)
async def log_food(
    food: FoodRecord,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.food_logs.log_food(user_id, food))


@router.post("/logs/batch", status_code=201)
async def log_foods(
    body: BatchLogRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.food_logs.log_foods(user_id, body.foods))


@router.delete("/logs/{log_id}")
async def delete_food_log(
    log_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.food_logs.delete_food_log(user_id, log_id))


@router.get("/logs/{log_id}/highlights")
async def food_highlights(
    log_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    return unwrap(await services.food_logs.food_highlights(user_id, log_id))
