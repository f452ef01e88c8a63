#!/usr/bin/env python3
"""Send due reminders once. Meant to be run from cron every minute."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reminder_bot.bootstrap import build_services, setup_logging
from reminder_bot.config import load_config
from reminder_bot.errors import ReminderBotError

logger = logging.getLogger(__name__)


async def sweep_once() -> dict:
    services = build_services()
    try:
        report = await services.dispatcher.sweep()
        return report.to_dict()
    finally:
        await services.aclose()


def main():
    parser = argparse.ArgumentParser(description="Send all reminders that are due now")
    parser.add_argument("--config", "-c", help="Path to config.yaml")
    parser.add_argument("--json", action="store_true", help="Print the sweep report as JSON")
    args = parser.parse_args()

    load_config(args.config)
    setup_logging()

    try:
        report = asyncio.run(sweep_once())
    except ReminderBotError as e:
        logger.error(f"Sweep failed: {e}")
        return 1

    if args.json:
        print(json.dumps(report))
    else:
        print(f"✅ Sweep done: {report['sent']} sent, {report['failed']} failed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
