# plate_palette/services/catalog_client.py
"""
USDA FoodData Central lookup.

Search results are validated here, at the boundary, into FoodRecord /
NutrientMeasurement models; nothing loosely-typed travels further into the
service. Uses httpx.AsyncClient. Callers get the usual result shape:
    {"ok": True, "data": [FoodRecord, ...], "diagnostics": {...}}
    {"ok": False, "error": "...", "error_kind": "upstream", "diagnostics": {...}}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from plate_palette.config.settings import Settings
from plate_palette.services.nutrient_ranker import NutrientMeasurement, parse_nutrients
from plate_palette.services.store import UPSTREAM, _fail, _make_result

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class FoodRecord(BaseModel):
    fdc_id: int = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=500)
    data_type: Optional[str] = None
    nutrients: List[NutrientMeasurement] = Field(default_factory=list)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be blank")
        return v

    @field_validator("nutrients", mode="before")
    @classmethod
    def drop_invalid_nutrients(cls, v: Any) -> List[NutrientMeasurement]:
        return parse_nutrients(v)

    @classmethod
    def from_usda(cls, food: Dict[str, Any]) -> "FoodRecord":
        return cls.model_validate(
            {
                "fdc_id": food.get("fdcId"),
                "description": food.get("description") or "",
                "data_type": food.get("dataType"),
                "nutrients": food.get("foodNutrients") or [],
            }
        )


def parse_search_response(payload: Any) -> List[FoodRecord]:
    """Validate a /foods/search payload; malformed food entries are skipped."""
    foods = payload.get("foods") if isinstance(payload, dict) else None
    records: List[FoodRecord] = []
    for food in foods or []:
        if not isinstance(food, dict):
            continue
        try:
            records.append(FoodRecord.from_usda(food))
        except ValidationError as exc:
            logger.debug("Skipping catalog record fdcId=%s: %s", food.get("fdcId"), exc)
    return records


class CatalogClient:

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        transport: optional httpx transport override (tests use httpx.MockTransport).
        """
        self.base_url = settings.usda_base_url.rstrip("/")
        self.api_key = settings.usda_api_key
        self.page_size = settings.usda_page_size
        self.timeout = settings.catalog_timeout_seconds
        self._transport = transport
        if not self.api_key:
            logger.warning("CatalogClient: USDA_API_KEY missing - search disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def search_foods(self, query: str, page_size: Optional[int] = None) -> Dict[str, Any]:
        query = (query or "").strip()
        diag: Dict[str, Any] = {"query": query}
        if len(query) < MIN_QUERY_LENGTH:
            diag["skipped"] = "query_too_short"
            return _make_result(True, data=[], diagnostics=diag)
        if not self.enabled:
            return _fail(UPSTREAM, "catalog_not_configured", diag)

        params = {
            "query": query,
            "pageSize": page_size or self.page_size,
            "api_key": self.api_key,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.get(f"{self.base_url}/foods/search", params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Catalog search failed status=%s", exc.response.status_code)
            diag["status_code"] = exc.response.status_code
            return _fail(UPSTREAM, "catalog_error", diag)
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Catalog search failed: %s", exc)
            diag["exception"] = type(exc).__name__
            return _fail(UPSTREAM, "catalog_unreachable", diag)

        records = parse_search_response(payload)
        diag["count"] = len(records)
        return _make_result(True, data=records, diagnostics=diag)
