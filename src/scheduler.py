from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from . import config
from .pipeline import Refresher

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "refresh_resources"


def build_scheduler(
    refresher: Refresher,
    cron: str = config.REFRESH_CRON,
    *,
    timezone: Optional[str] = config.REFRESH_TIMEZONE,
    run_at_startup: bool = True,
) -> BackgroundScheduler:
    """
    Daily cron job (local midnight by default) plus an immediate first run.

    Both triggers are the same job, so APScheduler's max_instances=1 and the
    refresher's own single-flight lock both keep runs from overlapping.
    """
    scheduler_kwargs: Dict[str, Any] = {}
    if timezone:
        scheduler_kwargs["timezone"] = timezone
    scheduler = BackgroundScheduler(**scheduler_kwargs)

    trigger = CronTrigger.from_crontab(cron, timezone=timezone)

    job_kwargs: Dict[str, Any] = {}
    if run_at_startup:
        job_kwargs["next_run_time"] = datetime.now(scheduler.timezone)

    scheduler.add_job(
        refresher.refresh,
        trigger,
        id=REFRESH_JOB_ID,
        name="refresh resources",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60 * 60,
        replace_existing=True,
        **job_kwargs,
    )
    logger.info("[scheduler] refresh job cron=%r run_at_startup=%s", cron, run_at_startup)
    return scheduler
