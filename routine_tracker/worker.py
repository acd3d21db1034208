"""
Standalone scheduler process.

Runs only the daily check-in generator, without the HTTP API:

    python -m routine_tracker.worker            # run the scheduler
    python -m routine_tracker.worker --once     # generate for tomorrow and exit
    python -m routine_tracker.worker --once --date 2025-11-12
"""
import argparse
import logging
import sys
from datetime import date

from apscheduler.schedulers.blocking import BlockingScheduler

from routine_tracker.config import load_config
from routine_tracker.database import create_db_engine, create_session_factory, init_db
from routine_tracker.exceptions import RoutineTrackerException
from routine_tracker.main import setup_logging
from routine_tracker.scheduler import SchedulerDriver

logger = logging.getLogger("routine_tracker.worker")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Routine tracker check-in scheduler")
    parser.add_argument("--once", action="store_true", help="run the generator once and exit")
    parser.add_argument("--date", type=date.fromisoformat, help="target day for --once (YYYY-MM-DD)")
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except RoutineTrackerException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config)
    engine = create_db_engine(config.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)

    if args.once:
        driver = SchedulerDriver(session_factory, config)
        try:
            result = driver.run_generator_now(args.date)
        except RoutineTrackerException as e:
            logger.error(f"Check-in generation failed: {e}")
            return 1
        return 1 if result.failed or not result.completed else 0

    if not config.cron_enabled:
        logger.info("Cron is disabled. Exiting.")
        return 0

    driver = SchedulerDriver(session_factory, config, scheduler=BlockingScheduler(timezone=config.tzinfo))
    logger.info("Scheduler worker started")
    try:
        driver.start()  # blocks until shutdown
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down scheduler worker")
        driver.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
