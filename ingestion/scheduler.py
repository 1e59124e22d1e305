import logging
from datetime import timedelta
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from core.config import Settings
from ingestion.range_resolver import daily_window, hourly_window
from ingestion.runner import SyncRunner
from models.base import SourceId

logger = logging.getLogger(__name__)

HOURLY_SOURCES = [SourceId.STRIPE, SourceId.META, SourceId.TIKTOK, SourceId.MAILERLITE]
DAILY_SOURCES = [SourceId.STEAM]


class SyncScheduler:
    def __init__(self, runner: SyncRunner, settings: Settings):
        self.runner = runner
        self.settings = settings
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    async def run_hourly_job(self):
        """Rolling window over the last HOURLY_SPAN_HOURS for the fast-moving sources"""
        window = hourly_window(span=timedelta(hours=self.settings.HOURLY_SPAN_HOURS))
        logger.info(f"Scheduler: hourly sync {window.since_iso} -> {window.until_iso}")
        try:
            results = await self.runner.run(window, HOURLY_SOURCES, persist_cursor=True)
            summary = {k: v.to_dict() for k, v in results.items()}
            logger.info(f"Scheduler: hourly sync done {summary}")
        except Exception as e:
            logger.error(f"Scheduler: hourly sync failed - {e}")

    async def run_daily_job(self):
        """Yesterday's storefront sales"""
        window = daily_window()
        logger.info(f"Scheduler: daily sync {window.since_iso} -> {window.until_iso}")
        try:
            results = await self.runner.run(window, DAILY_SOURCES, persist_cursor=True)
            summary = {k: v.to_dict() for k, v in results.items()}
            logger.info(f"Scheduler: daily sync done {summary}")
        except Exception as e:
            logger.error(f"Scheduler: daily sync failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_hourly_job,
            trigger=CronTrigger(minute=0, timezone="UTC"),
            id="hourly_sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.add_job(
            self.run_daily_job,
            trigger=CronTrigger(hour=4, minute=0, timezone="UTC"),
            id="daily_sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info("Sync scheduler started")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Sync scheduler stopped")
