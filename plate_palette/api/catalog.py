"""Food catalog search, each record annotated with its top nutrients."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from plate_palette.api.deps import Services, get_current_user_id, get_services, unwrap
from plate_palette.services.nutrient_ranker import top_significant_nutrients

router = APIRouter()


@router.get("/search", dependencies=[Depends(get_current_user_id)])
async def search_catalog(
    q: str = Query(..., description="free-text food query"),
    page_size: Optional[int] = Query(None, ge=1, le=50),
    services: Services = Depends(get_services),
):
    records = unwrap(await services.catalog.search_foods(q, page_size))
    return [
        {
            **record.model_dump(mode="json"),
            "highlights": [h.as_dict() for h in top_significant_nutrients(record.nutrients)],
        }
        for record in records
    ]
