"""Scheduled ingestion: named schedules, fan-out runner and cron jobs.

The HTTP cron endpoints are the primary trigger.  ``CronScheduler`` runs the
same schedules in-process with APScheduler when ``ENABLE_SCHEDULER`` is set.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from budgetgamer.config import settings
from budgetgamer.scrapers.factory import AdapterFactory
from budgetgamer.scrapers.ingest_service import IngestService

logger = structlog.get_logger(__name__)

DAILY_SCHEDULE = ("reddit", "amazon_prime", "epic_games", "humble_choice", "ps_plus")
THURSDAY_SCHEDULE = ("amazon_prime", "epic_games")

SCHEDULES: Dict[str, Sequence[str]] = {
    "daily": DAILY_SCHEDULE,
    "thursday": THURSDAY_SCHEDULE,
}


@dataclass
class ScheduleReport:
    """Outcome of one fan-out run: which adapters settled and which rejected."""

    successful: int = 0
    failed: int = 0
    results: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"successful": self.successful, "failed": self.failed, "results": self.results}


async def run_adapter_isolated(
    session_factory: async_sessionmaker[AsyncSession],
    slug: str,
    factory: Optional[AdapterFactory] = None,
) -> Dict[str, Any]:
    """Run one adapter in its own session and commit its writes."""
    async with session_factory() as db:
        try:
            tally = await IngestService(db, factory=factory).run_adapter(slug)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    return tally.to_dict()


async def run_schedule(
    session_factory: async_sessionmaker[AsyncSession],
    slugs: Sequence[str],
    factory: Optional[AdapterFactory] = None,
) -> ScheduleReport:
    """Run ``slugs`` concurrently and report which settled and which failed.

    Adapters share no session or state; one adapter failing has no effect
    on the others.
    """
    logger.info("schedule_started", adapters=list(slugs))

    outcomes = await asyncio.gather(
        *(run_adapter_isolated(session_factory, slug, factory) for slug in slugs),
        return_exceptions=True,
    )

    report = ScheduleReport()
    for slug, outcome in zip(slugs, outcomes):
        if isinstance(outcome, BaseException):
            report.failed += 1
            report.results[slug] = {"status": "rejected", "error": str(outcome)}
            logger.error("scheduled_adapter_failed", adapter=slug, error=str(outcome))
        else:
            report.successful += 1
            report.results[slug] = {"status": "fulfilled", **outcome}

    logger.info("schedule_finished", successful=report.successful, failed=report.failed)
    return report


class CronScheduler:
    """Runs the named schedules in-process using APScheduler cron triggers."""

    def __init__(self, db_session_factory: async_sessionmaker[AsyncSession]):
        """Initialize cron scheduler.

        Args:
            db_session_factory: Async session factory for database access
        """
        self.db_session_factory = db_session_factory
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="cron_scheduler")

    def start(self) -> None:
        """Register the daily and weekly jobs and start the scheduler."""
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return

        self.add_schedule_job("daily", settings.DAILY_CRON)
        self.add_schedule_job("thursday", settings.WEEKLY_CRON)
        self.scheduler.start()
        self.logger.info("scheduler_started")

    def stop(self) -> None:
        """Stop the scheduler, waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    def add_schedule_job(self, name: str, crontab: str):
        """Add a cron job running the named schedule."""
        job = self.scheduler.add_job(
            func=self._run_schedule_wrapper,
            trigger=CronTrigger.from_crontab(crontab, timezone="UTC"),
            args=[name],
            id=f"schedule_{name}",
            name=f"Schedule {name}",
            replace_existing=True,
            max_instances=1,  # Never overlap runs of the same schedule
        )
        self.logger.info("schedule_job_added", schedule=name, crontab=crontab)
        return job

    async def _run_schedule_wrapper(self, name: str) -> None:
        """Job entry point. Failures are logged so the scheduler keeps running."""
        try:
            report = await run_schedule(self.db_session_factory, SCHEDULES[name])
            self.logger.info("schedule_job_completed", schedule=name, **report.to_dict())
        except Exception as e:
            self.logger.error("schedule_job_failed", schedule=name, error=str(e), exc_info=True)

    def get_jobs_status(self) -> dict:
        """Next run time and trigger of each job."""
        return {
            job.id: {
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        }

    def is_running(self) -> bool:
        return self.scheduler.running
