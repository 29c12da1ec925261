from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..db.session import session_scope
from ..services.notifications import NotificationService
from .config import settings

logger = logging.getLogger(__name__)

LOW_STOCK_JOB_ID = "low_stock_check"

scheduler = BackgroundScheduler(timezone=settings.TZ)


def run_low_stock_check() -> int:
    """One pass of the periodic low-stock alert. Returns rows dispatched."""

    try:
        with session_scope() as db:
            sent = NotificationService(db).check_low_stock(settings.LOW_STOCK_THRESHOLD)
    except Exception:
        # The job must survive a bad run; the next tick retries.
        logger.exception("scheduler.low_stock_check_failed")
        return 0
    if sent:
        logger.info("scheduler.low_stock_alert_sent", extra={"extra_data": {"recipients": len(sent)}})
    return len(sent)


def start_scheduler() -> None:
    if scheduler.running:
        return
    scheduler.add_job(
        run_low_stock_check,
        trigger=IntervalTrigger(minutes=settings.LOW_STOCK_CHECK_MINUTES),
        id=LOW_STOCK_JOB_ID,
        name="Check equipment below the low-stock threshold",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("scheduler.started", extra={"extra_data": {"jobs": len(scheduler.get_jobs())}})


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler.stopped")
