#!/usr/bin/env python3
"""
Recompute food_logs.logged_date from logged_at under one named timezone.

Usage:
    python fix_timezones.py                     # settings.default_timezone
    python fix_timezones.py --zone Europe/Paris
    python fix_timezones.py --dry-run
"""
import argparse
import asyncio
import logging
import sys

from plate_palette.config.settings import get_settings
from plate_palette.config.supabase import SupabaseClient
from plate_palette.services.timezone_repair_service import TimezoneRepairService

logger = logging.getLogger("fix_timezones")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--zone", help="IANA timezone (default: DEFAULT_TIMEZONE)")
    parser.add_argument("--dry-run", action="store_true", help="report changes without writing")
    return parser.parse_args(argv)


async def run(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    wrapper = SupabaseClient(settings)
    if wrapper.client is None:
        logger.error("Missing Supabase credentials in environment variables")
        return 1

    service = TimezoneRepairService(wrapper.client)
    res = await service.run(args.zone or settings.default_timezone, dry_run=args.dry_run)
    if not res["ok"]:
        logger.error("Timezone fix failed: %s %s", res.get("error"), res.get("diagnostics"))
        return 1

    summary = res["data"]
    print("\n=== Summary ===")
    print(f"Total logs: {summary['total']}")
    print(f"Updated: {summary['updated']}{' (dry run)' if summary['dry_run'] else ''}")
    print(f"Unchanged: {summary['unchanged']}")
    print(f"Failed: {summary['failed']}")
    return 0 if summary["failed"] == 0 else 2


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(run()))
