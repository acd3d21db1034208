"""
Background scheduler for check-in generation.

Fires the check-in generator once a day at the configured local time and
timezone, targeting the next calendar day in that timezone. A failed run is
logged and left for the next fire (or an operator's manual run); it never
stops the scheduler. A run missed while the process was down is not caught
up automatically beyond APScheduler's misfire grace period.
"""
import logging
from datetime import date, datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import sessionmaker

from routine_tracker.config import AppConfig
from routine_tracker.constants import (
    GENERATOR_JOB_ID, MANUAL_GENERATOR_JOB_ID, MISFIRE_GRACE_SECONDS
)
from routine_tracker.database import session_scope
from routine_tracker.schemas import GenerationResult
from routine_tracker.services.checkin_generator import CheckinGenerator
from routine_tracker.services.date_service import DateService

logger = logging.getLogger("routine_tracker.scheduler")


class SchedulerDriver:
    """Owns the APScheduler instance and the daily generator job"""

    def __init__(
        self,
        session_factory: sessionmaker,
        config: AppConfig,
        scheduler: Optional[BaseScheduler] = None,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.session_factory = session_factory
        self.config = config
        self.tz = config.tzinfo
        self.scheduler = scheduler or BackgroundScheduler(timezone=self.tz)
        self.now = now or (lambda: datetime.now(self.tz))
        self.last_result: Optional[GenerationResult] = None

    def target_date(self) -> date:
        """Tomorrow in the configured timezone"""
        return DateService.tomorrow_in(self.tz, self.now())

    def run_generator_now(self, target_date: Optional[date] = None) -> GenerationResult:
        """
        Run the generator immediately in the calling thread.

        Args:
            target_date: Day to generate for (defaults to tomorrow)

        Returns:
            The run summary

        Raises:
            DatabaseException: The routine store could not be read
        """
        target = target_date or self.target_date()
        started = datetime.now()
        logger.info(f"Check-in generation started for {target.isoformat()}")

        with session_scope(self.session_factory) as db:
            generator = CheckinGenerator(
                db,
                timeout_seconds=self.config.generator_timeout_seconds,
                routine_retries=self.config.routine_retries
            )
            result = generator.run(target)

        self.last_result = result
        elapsed = (datetime.now() - started).total_seconds()
        logger.info(
            f"Check-in generation finished for {target.isoformat()} in {elapsed:.2f}s: "
            f"routines={result.total_routines}, due={result.due}, created={result.created}, "
            f"skipped_existing={result.skipped_existing}, failed={result.failed}, "
            f"timed_out={result.timed_out}"
        )
        if not result.completed:
            logger.warning(
                f"Check-in generation for {target.isoformat()} stopped at the "
                f"{self.config.generator_timeout_seconds}s limit; run it again to create the rest"
            )
        for routine_id, error in list(result.failures.items())[:5]:
            logger.warning(f"Routine {routine_id} failed: {error}")
        if len(result.failures) > 5:
            logger.warning(f"... and {len(result.failures) - 5} more failures")
        return result

    def scheduled_fire(self) -> Optional[GenerationResult]:
        """Job body for the daily trigger; never raises"""
        try:
            return self.run_generator_now()
        except Exception as e:
            logger.error(f"Scheduled check-in generation failed: {e}", exc_info=True)
            return None

    def start(self) -> bool:
        """
        Register the daily job and start the scheduler.

        Returns:
            True if the scheduler was started, False if disabled or already running
        """
        if not self.config.cron_enabled:
            logger.info("Check-in scheduler is disabled")
            return False

        if self.scheduler.running:
            logger.warning("Scheduler already running, skipping start")
            return False

        fire_time = self.config.fire_time
        self.scheduler.add_job(
            func=self.scheduled_fire,
            trigger=CronTrigger(
                hour=fire_time.hour,
                minute=fire_time.minute,
                timezone=self.tz
            ),
            id=GENERATOR_JOB_ID,
            name="Generate tomorrow's check-ins",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=MISFIRE_GRACE_SECONDS
        )

        if self.config.run_on_startup:
            self.trigger_now()

        logger.info(
            f"Starting APScheduler: generating check-ins daily at {self.config.cron_time} "
            f"({self.config.cron_timezone})"
        )
        for job in self.scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")

        # BlockingScheduler does not return from start() until shutdown
        self.scheduler.start()
        return True

    def trigger_now(self) -> None:
        """Queue a one-off generator run on the scheduler's own executor"""
        self.scheduler.add_job(
            func=self.scheduled_fire,
            id=MANUAL_GENERATOR_JOB_ID,
            name="Manual check-in generation",
            replace_existing=True,
            misfire_grace_time=MISFIRE_GRACE_SECONDS
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("APScheduler stopped")

    def status(self) -> dict:
        """Current scheduler state for the admin endpoint"""
        jobs = []
        if self.scheduler.running:
            for job in self.scheduler.get_jobs():
                jobs.append({
                    "id": job.id,
                    "name": job.name,
                    "trigger": str(job.trigger),
                    "next_run": job.next_run_time,
                })
        return {
            "enabled": self.config.cron_enabled,
            "running": self.scheduler.running,
            "timezone": self.config.cron_timezone,
            "fire_time": self.config.cron_time,
            "last_result": self.last_result,
            "jobs": jobs,
        }
