"""
APScheduler job runner for periodic archive runs.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from postmottak.config import settings
from postmottak.core.errors import ArchiveRunInProgressError
from postmottak.core.logging import get_logger

log = get_logger(__name__)

# Global scheduler instance
_scheduler: BackgroundScheduler | None = None


def archive_emails_job():
    """Scheduled job running one archive cycle over the post-room inbox."""
    from postmottak.processors.archive import ArchiveProcessor

    log.info("scheduled_job_starting", job="archive_emails")
    try:
        processor = ArchiveProcessor()
        summary = processor.process()
        log.info("scheduled_job_complete", job="archive_emails", **summary.stats)
    except ArchiveRunInProgressError:
        log.info("scheduled_job_skipped", job="archive_emails", reason="archive run already in progress")
    except Exception as e:
        log.error("scheduled_job_error", job="archive_emails", error=str(e))


def start_scheduler(interval_minutes: int | None = None) -> BackgroundScheduler:
    """
    Start the background scheduler.

    Only one archive run is allowed at a time; a run that is still going
    when the next one is due makes the scheduler skip that tick.

    Args:
        interval_minutes: How often to run (default: settings.scheduler_interval_minutes)

    Returns:
        The scheduler instance
    """
    global _scheduler

    if _scheduler is not None:
        log.warning("scheduler_already_running")
        return _scheduler

    interval_minutes = interval_minutes or settings.scheduler_interval_minutes
    _scheduler = BackgroundScheduler()

    _scheduler.add_job(
        archive_emails_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id="archive_emails",
        name="Archive post-room emails",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    _scheduler.start()
    log.info("scheduler_started", interval_minutes=interval_minutes)

    return _scheduler


def stop_scheduler():
    """Stop the background scheduler."""
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        log.info("scheduler_stopped")


def get_scheduler() -> BackgroundScheduler | None:
    """Get the current scheduler instance."""
    return _scheduler


def run_now():
    """Manually trigger the archive job."""
    archive_emails_job()
