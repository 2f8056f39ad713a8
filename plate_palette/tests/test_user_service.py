# tests/test_user_service.py
import pytest

from plate_palette.services.user_service import validate_weekly_goal


@pytest.mark.parametrize("goal", [5, 20, 100])
def test_goal_in_range_is_valid(goal):
    assert validate_weekly_goal(goal) is None


@pytest.mark.parametrize(
    "goal,code",
    [
        (4, "weekly_goal_out_of_range"),
        (101, "weekly_goal_out_of_range"),
        (0, "weekly_goal_out_of_range"),
        ("20", "weekly_goal_not_integer"),
        (20.5, "weekly_goal_not_integer"),
        (True, "weekly_goal_not_integer"),
    ],
)
def test_goal_rejections(goal, code):
    assert validate_weekly_goal(goal) == code


@pytest.mark.asyncio
async def test_update_goal_and_timezone(services, fake_client):
    res = await services.users.update_profile("u-alice", weekly_goal=12, timezone="Asia/Tokyo")
    assert res["ok"] is True
    alice = fake_client.rows("users")[0]
    assert alice["weekly_goal"] == 12
    assert alice["timezone"] == "Asia/Tokyo"
    assert alice["updated_at"]


@pytest.mark.asyncio
async def test_invalid_field_blocks_whole_update(services, fake_client):
    res = await services.users.update_profile("u-alice", first_name="Al", weekly_goal=101)
    assert res["error_kind"] == "validation"
    assert res["error"] == "weekly_goal_out_of_range"
    assert res["diagnostics"] == {"min": 5, "max": 100}
    assert fake_client.rows("users")[0]["first_name"] == "Alice"
    assert ("users", "update") not in fake_client.calls


@pytest.mark.asyncio
async def test_unknown_timezone_rejected(services, fake_client):
    res = await services.users.update_profile("u-alice", timezone="Atlantis/Capital")
    assert res["error"] == "unknown_timezone"
    assert fake_client.rows("users")[0]["timezone"] is None


@pytest.mark.asyncio
async def test_blank_first_name_clears_it(services, fake_client):
    res = await services.users.update_profile("u-alice", first_name="   ")
    assert res["ok"] is True
    assert fake_client.rows("users")[0]["first_name"] is None


@pytest.mark.asyncio
async def test_empty_update(services):
    res = await services.users.update_profile("u-alice")
    assert res["error"] == "nothing_to_update"


@pytest.mark.asyncio
async def test_update_unknown_user(services):
    res = await services.users.update_profile("u-ghost", weekly_goal=10)
    assert res["error_kind"] == "not_found"


def test_derived_defaults(services):
    users = services.users
    assert users.timezone_for({"id": "x", "timezone": "Europe/Berlin"}) == "Europe/Berlin"
    assert users.timezone_for({"id": "x", "timezone": "Not/AZone"}) == "America/Los_Angeles"
    assert users.timezone_for(None) == "America/Los_Angeles"
    assert users.weekly_goal_for({"weekly_goal": 7}) == 7
    assert users.weekly_goal_for({"weekly_goal": 3}) == 20
    assert users.weekly_goal_for({}) == 20


@pytest.mark.asyncio
async def test_find_user_by_email_is_case_insensitive(services):
    res = await services.users.find_user_by_email("CAROL@example.COM")
    assert res["data"]["id"] == "u-carol"


@pytest.mark.asyncio
async def test_missing_client_is_upstream(settings):
    from plate_palette.services.user_service import UserService

    res = await UserService(None, settings).get_user("u-alice")
    assert res == {
        "ok": False,
        "error": "no_supabase_client",
        "error_kind": "upstream",
        "diagnostics": {},
    }
