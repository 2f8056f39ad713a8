# tests/test_catalog_client.py
import httpx
import pytest

from plate_palette.config.settings import Settings
from plate_palette.services.catalog_client import CatalogClient, FoodRecord, parse_search_response

APPLE = {
    "fdcId": 171688,
    "description": "  Apples, raw, with skin  ",
    "dataType": "SR Legacy",
    "foodNutrients": [
        {"nutrientId": 1079, "value": 2.4, "unitName": "G"},
        {"nutrientId": 1162, "value": 4.6, "unitName": "MG"},
    ],
}


@pytest.mark.asyncio
async def test_search_sends_query_and_parses_records(services, catalog_handler):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"foods": [APPLE, {"fdcId": 0, "description": "bad"}]})

    catalog_handler.handler = handler
    res = await services.catalog.search_foods("apple", page_size=5)

    assert res["ok"] is True
    assert seen["path"].endswith("/foods/search")
    assert seen["params"] == {"query": "apple", "pageSize": "5", "api_key": "test-key"}
    assert len(res["data"]) == 1
    record = res["data"][0]
    assert isinstance(record, FoodRecord)
    assert record.fdc_id == 171688
    assert record.description == "Apples, raw, with skin"
    assert [n.nutrient_id for n in record.nutrients] == [1079, 1162]


@pytest.mark.asyncio
async def test_short_query_skips_network(services, catalog_handler):
    def handler(request):
        raise AssertionError("should not be called")

    catalog_handler.handler = handler
    res = await services.catalog.search_foods(" a ")
    assert res["ok"] is True
    assert res["data"] == []
    assert res["diagnostics"]["skipped"] == "query_too_short"


@pytest.mark.asyncio
async def test_error_status_is_upstream_failure(services, catalog_handler):
    catalog_handler.handler = lambda request: httpx.Response(503, json={"error": "down"})
    res = await services.catalog.search_foods("banana")
    assert res["ok"] is False
    assert res["error_kind"] == "upstream"
    assert res["error"] == "catalog_error"
    assert res["diagnostics"]["status_code"] == 503


@pytest.mark.asyncio
async def test_transport_failure_is_unreachable(services, catalog_handler):
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    catalog_handler.handler = handler
    res = await services.catalog.search_foods("banana")
    assert res["ok"] is False
    assert res["error"] == "catalog_unreachable"


@pytest.mark.asyncio
async def test_missing_api_key_disables_search():
    client = CatalogClient(Settings(_env_file=None, usda_api_key="  "))
    assert client.enabled is False
    res = await client.search_foods("banana")
    assert res["error"] == "catalog_not_configured"


def test_parse_search_response_handles_odd_payloads():
    assert parse_search_response(None) == []
    assert parse_search_response({"foods": None}) == []
    assert parse_search_response({"foods": ["x", {"fdcId": 5, "description": "   "}]}) == []
