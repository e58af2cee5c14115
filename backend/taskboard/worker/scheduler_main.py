"""Background worker that runs taskboard housekeeping on a schedule.

Run with ``python -m taskboard.worker.scheduler_main``. The API process never
starts a scheduler itself; expired auth sessions are purged here.
"""
from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from taskboard.core.config import Settings, settings
from taskboard.core.logging import configure_logging
from taskboard.db.session import get_session_factory
from taskboard.services.maintenance import PurgeResult, purge_expired_sessions

logger = logging.getLogger(__name__)

SESSION_PURGE_JOB_ID = "session_purge_job"


def run_session_purge_job() -> Optional[PurgeResult]:
    """One purge pass; failures are logged so the next interval still runs."""
    with get_session_factory()() as db:
        try:
            return purge_expired_sessions(db)
        except Exception:  # pragma: no cover - keeps the scheduler alive
            logger.exception("Session purge job failed")
            return None


def register_jobs(scheduler: BackgroundScheduler, config: Settings = settings) -> None:
    scheduler.add_job(
        run_session_purge_job,
        trigger="interval",
        minutes=config.session_purge_interval_minutes,
        id=SESSION_PURGE_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info("Session purge scheduled every %s min", config.session_purge_interval_minutes)


def build_scheduler(config: Settings = settings) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone=config.scheduler_timezone)
    if config.scheduler_enabled:
        register_jobs(scheduler, config)
    return scheduler


def main() -> None:
    configure_logging(log_level=settings.log_level)
    scheduler = build_scheduler()
    if not settings.scheduler_enabled:
        logger.warning("Scheduler disabled (SCHEDULER_ENABLED=false); worker idles until stopped")
    else:
        # Sessions may have lapsed while the worker was down.
        run_session_purge_job()
        scheduler.start()

    stopped = threading.Event()

    def stop(signum, frame):  # pragma: no cover - signal handler
        logger.info("Stopping scheduler worker (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stopped.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, stop)
    stopped.wait()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
