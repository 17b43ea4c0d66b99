#!/usr/bin/env python3
"""
Run one appointment reminder cycle and exit.

Useful for external cron, or to check provider credentials before enabling
the in-process scheduler.

Usage:
    python scripts/run_reminders.py
    python scripts/run_reminders.py --json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from careflow.config import get_settings  # noqa: E402
from careflow.core.reminders import build_reminder_service, close_reminder_service  # noqa: E402
from careflow.infra.database import close_db  # noqa: E402
from careflow.main import setup_logging  # noqa: E402


async def main(as_json: bool) -> int:
    """Run a single reminder cycle. Returns the process exit code."""
    settings = get_settings()
    service = build_reminder_service(settings)

    try:
        result = await service.run_reminder_cycle()
    finally:
        await close_reminder_service(service)
        await close_db()

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        print(f"Reminders complete: {result.sent}/{result.total} appointments reminded")
        for outcome in result.results:
            email = "ok" if outcome.email_result and outcome.email_result.success else "failed"
            sms_result = outcome.sms_result
            if sms_result is None:
                sms = "-"
            elif sms_result.success:
                sms = "ok"
            else:
                sms = sms_result.reason or "failed"
            print(f"  {outcome.appointment_id}: email={email} sms={sms}")
    else:
        print(f"Error processing reminders: {result.error}")

    return 0 if result.success else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one appointment reminder cycle")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args.json)))
