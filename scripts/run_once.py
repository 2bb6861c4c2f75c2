"""
Script to run every configured source once and exit
"""

import asyncio
import logging
import sys

from core.config import settings
from core.exceptions import ConfigError
from core.logging import setup_logging
from ingestion.scheduler import CollectorScheduler
from schemas.job import RunStatus

logger = logging.getLogger(__name__)


async def run_once() -> int:
    """Run all sources concurrently; exit code 1 only when the sources cannot be loaded"""
    try:
        scheduler = CollectorScheduler.from_settings(settings)
    except ConfigError as e:
        logger.error(f"Collector config error: {e}")
        return 1

    if not scheduler.sources:
        logger.warning("No sources configured. Nothing to collect.")
        await scheduler.shutdown()
        return 0

    try:
        results = await scheduler.run_all_once()
    finally:
        await scheduler.shutdown()

    for result in results:
        logger.info(
            f"{result.source_name}: {result.status.value} - "
            f"Records={result.records_collected}, "
            f"Published={result.events_published}, Failed={result.events_failed}"
        )

    failed = [r.source_name for r in results if r.status == RunStatus.FAILED]
    if failed:
        logger.warning(f"Sources failed this cycle: {failed}")
    logger.info("All collection jobs completed")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_once()))
