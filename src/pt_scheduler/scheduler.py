"""APScheduler wiring for the cron jobs (all times in the market timezone)."""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config.settings import settings
from src.pt_pricing.application.service import PriceService
from src.pt_scheduler.jobs import backup_database, capture_eod_prices, run_order_watcher


def build_scheduler(prices: PriceService, timezone: str | None = None) -> AsyncIOScheduler:
    tz = timezone or settings.SCHEDULER_TIMEZONE
    scheduler = AsyncIOScheduler(timezone=tz)
    scheduler.add_job(
        capture_eod_prices,
        trigger=CronTrigger(day_of_week="mon-fri", hour=16, minute=2, timezone=tz),
        kwargs={"prices": prices},
        id="eod_capture",
        name="End-of-day price capture",
        replace_existing=True,
    )
    scheduler.add_job(
        run_order_watcher,
        trigger=CronTrigger(day_of_week="mon-fri", hour="9-16", minute="*/5", timezone=tz),
        kwargs={"prices": prices},
        id="order_watcher",
        name="Order watcher",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        backup_database,
        trigger=CronTrigger(hour=2, minute=0, timezone=tz),
        id="nightly_backup",
        name="Nightly database backup",
        replace_existing=True,
    )
    return scheduler
