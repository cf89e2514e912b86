from __future__ import annotations

import logging
from datetime import timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .orchestrator import ReminderOrchestrator, get_orchestrator
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

JOB_ID = "reminder-run"


# PUBLIC_INTERFACE
def run_scheduled(orchestrator: Optional[ReminderOrchestrator] = None) -> None:
    """
    Host entry point of the fixed-interval trigger. Takes no arguments from the
    timer, returns None, and logs any failure instead of raising it.
    """
    try:
        (orchestrator or get_orchestrator()).run()
    except Exception:
        logger.exception("Reminder run aborted")
    return None


# PUBLIC_INTERFACE
def start_interval_trigger(
    settings: Optional[Settings] = None,
    orchestrator: Optional[ReminderOrchestrator] = None,
) -> BackgroundScheduler:
    """
    Start a background scheduler that calls run_scheduled every
    RUN_INTERVAL_MINUTES. Runs of this scheduler never overlap each other
    (max_instances=1); other processes or the HTTP trigger are not excluded.
    """
    settings = settings or get_settings()
    scheduler = BackgroundScheduler(timezone=timezone.utc)
    scheduler.add_job(
        run_scheduled,
        "interval",
        minutes=settings.run_interval_minutes,
        id=JOB_ID,
        kwargs={"orchestrator": orchestrator},
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Interval trigger started: every %d minute(s)", settings.run_interval_minutes)
    return scheduler
