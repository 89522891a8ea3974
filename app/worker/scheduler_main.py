"""Standalone APScheduler process that runs the daily drift scan."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.job_runner import run_drift_scan_for_all_users

logger = logging.getLogger(__name__)

DRIFT_JOB_ID = "drift_scan_job"


def register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        run_drift_job,
        trigger="cron",
        hour=settings.drift_job_hour,
        minute=settings.drift_job_minute,
        id=DRIFT_JOB_ID,
        replace_existing=True,
        coalesce=True,
    )
    logger.info(
        "Drift scan scheduled daily at %02d:%02d (%s)",
        settings.drift_job_hour,
        settings.drift_job_minute,
        settings.scheduler_timezone,
    )


def run_drift_job() -> None:
    """One scan over every user with open tasks, in its own session."""
    db = SessionLocal()
    try:
        outcome = run_drift_scan_for_all_users(db)
    except Exception:  # pragma: no cover - keeps the scheduler thread alive
        logger.exception("Drift scan job failed")
    else:
        logger.info(
            "Drift scan finished: %s users scanned, %s snapshots written",
            outcome.users_processed,
            outcome.snapshots_written,
        )
    finally:
        db.close()


def main() -> None:
    configure_logging(log_level=settings.log_level)
    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if not settings.scheduler_enabled:
        logger.warning("SCHEDULER_ENABLED is false; drift worker idles until stopped")
    else:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            run_drift_job()

    stopped = threading.Event()

    def _stop(signum, frame):  # pragma: no cover - signal handler
        logger.info("Drift worker stopping on signal %s", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stopped.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _stop)

    try:
        stopped.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        _stop(signal.SIGINT, None)


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
