"""
Scheduler Entry Point — runs in a separate container.

Usage:
    python -m investbridge.scheduler_main

This does NOT run a web server. It runs the APScheduler background loop
for the notification retention sweep and the daily portfolio refresh.
"""

import asyncio
import signal

import structlog

from investbridge.api.deps import build_platform
from investbridge.config import settings
from investbridge.db.engine import close_db, get_session_factory, init_db
from investbridge.log_config import configure_logging
from investbridge.services.scheduler import PlatformScheduler

logger = structlog.get_logger(__name__)


async def main():
    """Initialize and run the scheduler."""
    configure_logging()
    logger.info("scheduler_starting", version=settings.app_version, timezone=settings.scheduler_timezone)

    await init_db()
    platform = build_platform(get_session_factory())

    scheduler = PlatformScheduler(sweeper=platform.sweeper, portfolios=platform.portfolios)
    scheduler.start()

    stop_event = asyncio.Event()

    def _handle_signal(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    logger.info("scheduler_running", msg="Waiting for jobs... Ctrl+C to stop.")
    await stop_event.wait()

    scheduler.stop()
    await close_db()
    logger.info("scheduler_shutdown_complete")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
