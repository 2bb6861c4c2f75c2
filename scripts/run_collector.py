"""
Run the collector scheduler headless until SIGINT/SIGTERM
"""

import asyncio
import logging
import signal
import sys

from core.config import settings
from core.exceptions import ConfigError
from core.logging import setup_logging
from ingestion.scheduler import CollectorScheduler

logger = logging.getLogger(__name__)


async def main() -> int:
    try:
        scheduler = CollectorScheduler.from_settings(settings)
    except ConfigError as e:
        logger.error(f"Cannot start collector: {e}")
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(f"Collector running with {len(scheduler.sources)} sources. Hit CTRL-C to stop it.")
    await scheduler.serve(stop_event)
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
