"""
APScheduler wiring for the maintenance jobs.

Jobs run on the application's event loop. A failing job is logged and
retried at its next scheduled time.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI

from . import service

REFRESH_JOB_ID = "refresh-items"
TOKEN_SWEEP_JOB_ID = "sweep-tokens"

logger = logging.getLogger(__name__)


async def _refresh_job(app: FastAPI) -> None:
    try:
        await service.refresh_items(app.state.files)
    except Exception:
        logger.exception("refresh_job_failed")


async def _sweep_job(app: FastAPI) -> None:
    try:
        service.sweep_tokens(app.state.tokens)
    except Exception:
        logger.exception("token_sweep_job_failed")


def build_scheduler(app: FastAPI) -> AsyncIOScheduler:
    settings = app.state.settings
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        _refresh_job,
        CronTrigger.from_crontab(settings.refresh_cron, timezone="UTC"),
        args=[app],
        id=REFRESH_JOB_ID,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        _sweep_job,
        IntervalTrigger(minutes=settings.token_sweep_minutes),
        args=[app],
        id=TOKEN_SWEEP_JOB_ID,
        coalesce=True,
        max_instances=1,
    )
    return scheduler


def start_scheduler(app: FastAPI) -> AsyncIOScheduler:
    scheduler = build_scheduler(app)
    scheduler.start()
    logger.info(
        "scheduler_started refresh_cron=%r token_sweep_minutes=%s",
        app.state.settings.refresh_cron,
        app.state.settings.token_sweep_minutes,
    )
    return scheduler
