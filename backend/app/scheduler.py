"""APScheduler integration for the scheduled-commit sweep."""

import logging
from datetime import datetime
from typing import List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from croniter import croniter

from app.config import settings
from app.database import get_db
from app.services.sweep_service import ScheduledCommitSweeper
from app.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)

JOB_ID = "scheduled_commit_sweep"

# Global scheduler instance
scheduler = AsyncIOScheduler()

# Guard against overlapping runs inside this process
_sweep_running = False


def is_sweep_running() -> bool:
    return _sweep_running


async def scheduled_sweep_job():
    """Run one sweep unless the previous one is still busy."""
    global _sweep_running

    if _sweep_running:
        log.warning("Scheduled sweep skipped: previous run still active")
        return

    _sweep_running = True
    db_gen = get_db()
    db = next(db_gen)
    try:
        log.info("Starting scheduled commit sweep")
        summary = await ScheduledCommitSweeper(db).run()
        if summary["processed"]:
            create_audit_log(
                db=db,
                request=None,
                action="sweep_completed",
                entity_type="scheduled_commit",
                user="scheduler",
                details=summary
            )
        log.info(f"Scheduled sweep finished: {summary['processed']} commits processed")
    except Exception as e:
        log.error(f"Scheduled sweep failed: {e}", exc_info=True)
    finally:
        _sweep_running = False
        db.close()


def compute_next_runs(cron: str, count: int = 3) -> List[str]:
    """Next N run times of a cron expression, local time."""
    try:
        iter_obj = croniter(cron, datetime.now())
        return [iter_obj.get_next(datetime).isoformat() for _ in range(count)]
    except Exception as e:
        log.warning(f"Failed to compute next runs for '{cron}': {e}")
        return []


def reschedule_sweep_job(cron: str, enabled: bool):
    """(Re)register the sweep job without restarting the app."""
    if scheduler.get_job(JOB_ID):
        scheduler.remove_job(JOB_ID)
        log.info(f"Removed existing job: {JOB_ID}")

    if not enabled:
        log.info("Scheduled sweep job disabled")
        return

    if not croniter.is_valid(cron):
        raise ValueError(f"Invalid cron expression: '{cron}'")

    scheduler.add_job(
        scheduled_sweep_job,
        trigger=CronTrigger.from_crontab(cron),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )
    log.info(f"Scheduled sweep job registered: cron='{cron}'")


def start_scheduler():
    """Start APScheduler with the configured sweep cron."""
    if not settings.sweep_enabled:
        log.info("In-process sweep disabled; rely on the cron endpoint")
        return

    try:
        reschedule_sweep_job(settings.sweep_cron, True)
    except ValueError as e:
        log.error(f"Failed to schedule sweep: {e}")
        return

    if not scheduler.running:
        scheduler.start()
        log.info("APScheduler started successfully")


def shutdown_scheduler():
    """Shutdown the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        log.info("APScheduler shut down successfully")
