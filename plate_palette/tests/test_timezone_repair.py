# tests/test_timezone_repair.py
import pytest

import fix_timezones
from plate_palette.config.supabase import SupabaseClient
from plate_palette.services.timezone_repair_service import TimezoneRepairService


@pytest.fixture
def skewed_logs(fake_client):
    fake_client.tables["food_logs"] = [
        # stamped with the UTC date; Sunday evening in Los Angeles
        {"id": "l1", "user_id": "u-bob", "fdc_id": 1, "food_name": "Apple",
         "logged_at": "2026-10-19T05:00:00+00:00", "logged_date": "2026-10-19", "week_starting_date": "2026-10-19"},
        # already correct
        {"id": "l2", "user_id": "u-bob", "fdc_id": 2, "food_name": "Pear",
         "logged_at": "2026-10-14T18:00:00Z", "logged_date": "2026-10-14", "week_starting_date": "2026-10-12"},
        # right date, missing week column
        {"id": "l3", "user_id": "u-bob", "fdc_id": 3, "food_name": "Plum",
         "logged_at": "2026-10-15T18:00:00+00:00", "logged_date": "2026-10-15", "week_starting_date": None},
        {"id": "l4", "user_id": "u-bob", "fdc_id": 4, "food_name": "Kiwi",
         "logged_at": "yesterday", "logged_date": "2026-10-15", "week_starting_date": "2026-10-12"},
    ]
    return fake_client


def _row(client, log_id):
    return next(r for r in client.rows("food_logs") if r["id"] == log_id)


@pytest.mark.asyncio
async def test_repair_recomputes_dates(skewed_logs):
    res = await TimezoneRepairService(skewed_logs).run("America/Los_Angeles")

    assert res["ok"] is True
    summary = res["data"]
    assert (summary["total"], summary["updated"], summary["unchanged"], summary["failed"]) == (4, 2, 1, 1)
    assert _row(skewed_logs, "l1")["logged_date"] == "2026-10-18"
    assert _row(skewed_logs, "l1")["week_starting_date"] == "2026-10-12"
    assert _row(skewed_logs, "l3")["week_starting_date"] == "2026-10-12"
    assert {c["id"] for c in summary["changes"]} == {"l1", "l3"}


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(skewed_logs):
    res = await TimezoneRepairService(skewed_logs).run("America/Los_Angeles", dry_run=True)
    assert res["data"]["updated"] == 2
    assert res["data"]["dry_run"] is True
    assert _row(skewed_logs, "l1")["logged_date"] == "2026-10-19"
    assert ("food_logs", "update") not in skewed_logs.calls


@pytest.mark.asyncio
async def test_repair_is_idempotent(skewed_logs):
    service = TimezoneRepairService(skewed_logs)
    await service.run("America/Los_Angeles")
    again = await service.run("America/Los_Angeles")
    assert again["data"]["updated"] == 0
    assert again["data"]["unchanged"] == 3


@pytest.mark.asyncio
async def test_failed_update_is_counted(skewed_logs):
    skewed_logs.failures[("food_logs", "update")] = RuntimeError("timeout")
    res = await TimezoneRepairService(skewed_logs).run("America/Los_Angeles")
    assert res["data"]["updated"] == 0
    assert res["data"]["failed"] == 3


@pytest.mark.asyncio
async def test_unknown_zone(fake_client):
    res = await TimezoneRepairService(fake_client).run("Moon/Base")
    assert res["error_kind"] == "validation"
    assert res["error"] == "unknown_timezone"


@pytest.mark.asyncio
async def test_script_exit_codes(monkeypatch, settings, skewed_logs, capsys):
    monkeypatch.setattr(fix_timezones, "get_settings", lambda: settings)
    monkeypatch.setattr(
        fix_timezones, "SupabaseClient", lambda s: SupabaseClient(s, client=skewed_logs)
    )

    # the unreadable row keeps the exit code non-zero
    assert await fix_timezones.run(["--dry-run"]) == 2
    assert "Updated: 2 (dry run)" in capsys.readouterr().out

    skewed_logs.tables["food_logs"] = [r for r in skewed_logs.rows("food_logs") if r["id"] != "l4"]
    assert await fix_timezones.run(["--zone", "America/Los_Angeles"]) == 0


@pytest.mark.asyncio
async def test_script_without_credentials(monkeypatch, settings):
    monkeypatch.setattr(fix_timezones, "get_settings", lambda: settings)
    assert await fix_timezones.run([]) == 1
