# File: app/core/scheduler.py
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "invitation_setup_reminders"

scheduler = BackgroundScheduler(timezone="UTC")


def schedule_reminder_job(target_scheduler: BackgroundScheduler = scheduler, config=settings):
    """Register the reminder job: first run shortly after start, then every interval."""
    from app.services.reminder_scheduler import run_reminder_job

    return target_scheduler.add_job(
        run_reminder_job,
        trigger=IntervalTrigger(hours=config.REMINDER_INTERVAL_HOURS),
        id=REMINDER_JOB_ID,
        name="Send invitation setup reminders",
        next_run_time=datetime.now(timezone.utc) + timedelta(seconds=config.REMINDER_INITIAL_DELAY_SECONDS),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )


def start_scheduler():
    """Start all scheduled jobs"""
    if not settings.ENABLE_REMINDER_SCHEDULER:
        logger.info("Reminder scheduler disabled")
        return

    try:
        schedule_reminder_job()
        scheduler.start()
        logger.info("✅ Scheduler started successfully")
        logger.info(f"Active jobs: {len(scheduler.get_jobs())}")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop scheduler gracefully"""
    if not scheduler.running:
        return
    try:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")
