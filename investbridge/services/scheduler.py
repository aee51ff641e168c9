"""
Platform Scheduler. Runs in a separate process (investbridge-scheduler).

NOT inside the API process.

Jobs:
1. Notification retention sweep (daily 02:00, scheduler timezone)
2. Portfolio metrics refresh (daily 03:00, scheduler timezone)
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from investbridge.config import settings
from investbridge.services.portfolios import PortfolioService
from investbridge.services.retention import RetentionSweeper

logger = structlog.get_logger(__name__)


class PlatformScheduler:
    """Background scheduler for maintenance jobs."""

    def __init__(
        self,
        sweeper: RetentionSweeper,
        portfolios: PortfolioService,
        timezone: str | None = None,
    ):
        self.sweeper = sweeper
        self.portfolios = portfolios
        self.timezone = timezone or settings.scheduler_timezone
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

    def register_jobs(self):
        self.scheduler.add_job(
            self.run_retention_sweep,
            CronTrigger(hour=settings.retention_cron_hour, minute=0, timezone=self.timezone),
            id="notification_retention",
            max_instances=1,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_portfolio_refresh,
            CronTrigger(hour=settings.portfolio_cron_hour, minute=0, timezone=self.timezone),
            id="portfolio_refresh",
            max_instances=1,
            replace_existing=True,
        )

    def start(self):
        """Register and start all scheduled jobs."""
        self.register_jobs()
        self.scheduler.start()
        logger.info("platform_scheduler_started", timezone=self.timezone)

    def stop(self):
        """Gracefully stop the scheduler."""
        self.scheduler.shutdown(wait=True)
        logger.info("platform_scheduler_stopped")

    async def run_retention_sweep(self):
        try:
            await self.sweeper.sweep()
        except Exception as e:
            logger.error("retention_sweep_failed", error=str(e))

    async def run_portfolio_refresh(self):
        try:
            await self.portfolios.refresh_all()
        except Exception as e:
            logger.error("portfolio_refresh_job_failed", error=str(e))
