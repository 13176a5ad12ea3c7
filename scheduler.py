"""
Scheduler - Periodic submission processing

Runs one worker invocation every WORKER_INTERVAL_SECONDS. Concurrent
invocations (scheduler plus /api/process) are safe: the queue's
visibility timeout keeps a claimed item exclusive.

Usage:
    python scheduler.py              # Run scheduler daemon
    python scheduler.py --once       # Process one batch and exit
"""
import asyncio
import sys
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings, ensure_directories
from utils import logger, init_logging


class SubmissionScheduler:
    """Scheduler that drains the submissions queue on an interval."""

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self._last_run_result = None

    def setup(self):
        """Register the worker job."""
        ensure_directories()

        self.scheduler.add_job(
            self.run_worker_batch,
            IntervalTrigger(seconds=settings.WORKER_INTERVAL_SECONDS),
            id="process_submissions",
            name="Process queued submissions",
            replace_existing=True,
            max_instances=1,
            next_run_time=datetime.now() + timedelta(seconds=5)
        )

        logger.info("Scheduler setup complete with 1 job (process submissions)")
        self._log_schedule()

    def _log_schedule(self):
        """Log current job schedule."""
        jobs = self.scheduler.get_jobs()
        logger.info(f"Scheduled jobs ({len(jobs)}):")
        for job in jobs:
            logger.info(f"  - {job.name}: {job.trigger}")

    async def run_worker_batch(self) -> bool:
        """
        Job: process one batch of queued submissions.

        Returns:
            False if the invocation itself failed
        """
        from database import init_engine, create_tables
        from processor import SubmissionWorker

        try:
            await init_engine()
            await create_tables()

            worker = SubmissionWorker()
            result = await worker.run_batch()
            self._last_run_result = result

            if result.processed or result.discarded:
                logger.info(f"Worker run: {result.succeeded} processed, {result.failed} failed, "
                            f"{result.discarded} discarded")
            return True

        except Exception as e:
            logger.exception(f"Worker run failed: {e}")
            return False

    def start(self):
        """Start the scheduler."""
        self.setup()
        self.scheduler.start()
        logger.info("Scheduler started - Press Ctrl+C to stop")

    def stop(self):
        """Stop the scheduler."""
        self.scheduler.shutdown()
        logger.info("Scheduler stopped")

    def run_once(self) -> bool:
        """Process one batch and exit."""
        from database import close_engine

        ensure_directories()

        async def _run():
            try:
                return await self.run_worker_batch()
            finally:
                await close_engine()

        return asyncio.run(_run())


def run_scheduler():
    """Run the scheduler as main process."""
    import signal

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    scheduler = SubmissionScheduler()
    scheduler.start()

    def shutdown(signum, frame):
        logger.info("Received shutdown signal")
        scheduler.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        loop.run_forever()
    except (KeyboardInterrupt, SystemExit):
        scheduler.stop()


def main():
    """Main entry point with CLI arguments."""
    import argparse

    parser = argparse.ArgumentParser(description="Survey submission scheduler")
    parser.add_argument("--once", action="store_true", help="Process one batch and exit")

    args = parser.parse_args()

    init_logging(app_name="scheduler")

    scheduler = SubmissionScheduler()

    if args.once:
        result = scheduler.run_once()
        sys.exit(0 if result else 1)
    else:
        run_scheduler()


if __name__ == "__main__":
    main()
