#!/usr/bin/env python3
"""Run the reminder bot API server (webhook + cron trigger)."""

import logging
import sys
from pathlib import Path

from reminder_bot.bootstrap import setup_logging
from reminder_bot.config import get, load_config

logger = logging.getLogger(__name__)


def main():
    """Run the API server."""
    config_path = Path(__file__).parent / "config" / "config.yaml"
    load_config(str(config_path) if config_path.exists() else None)
    setup_logging()

    host = get("api.host", "127.0.0.1")
    port = int(get("api.port", 8000))

    logger.info(f"Starting reminder bot on {host}:{port}")
    logger.info(f"  - Webhook: http://{host}:{port}/webhook")
    logger.info(f"  - Cron trigger: http://{host}:{port}/cron")

    # Import here so configuration is loaded first
    import uvicorn
    from reminder_bot.api import app

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    sys.exit(main())
