"""
Scheduler for running the crawler on a recurring basis.

Supports daily runs at a fixed time (optionally restricted to weekdays) and
simple interval-based execution, both via the schedule library.
"""

import logging
import time
from datetime import datetime
from threading import Event, Thread
from typing import Any, Callable, Dict, Optional

import schedule

logger = logging.getLogger(__name__)

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


class CronScheduler:
    """
    Scheduler for running crawler jobs at specified intervals or times.

    Supports:
    - Interval-based execution (e.g., every 6 hours)
    - Time-based execution (e.g., daily at 06:00)
    - Weekly execution on selected days
    """

    def __init__(self, config: Dict[str, Any], scheduler: Optional[schedule.Scheduler] = None):
        """
        Initialize scheduler.

        Args:
            config: Scheduler configuration dictionary
                - mode: 'interval' or 'time'
                - interval_hours: For interval mode (e.g., 6)
                - time: For time mode (e.g., "06:00")
                - days: For weekly schedule (e.g., ["monday", "wednesday"])
                - run_on_start: Run once immediately before waiting
            scheduler: schedule.Scheduler to register jobs on (private one by default)
        """
        self.config = config
        self.mode = config.get('mode', 'time')
        self.interval_hours = config.get('interval_hours', 24)
        self.time_str = config.get('time', '06:00')
        self.days = config.get('days') or None
        self.run_on_start = config.get('run_on_start', True)

        self.scheduler = scheduler or schedule.Scheduler()
        self.is_running = False
        self.stop_event = Event()
        self.thread: Optional[Thread] = None

    def configure(self, job_func: Callable) -> None:
        """
        Register job_func according to the configured mode.

        Raises:
            ValueError: On an unknown mode or weekday name
        """
        self.scheduler.clear()

        if self.mode == 'interval':
            self.scheduler.every(self.interval_hours).hours.do(self._safe_job_wrapper, job_func)
            logger.info(f"Scheduled to run every {self.interval_hours} hours")

        elif self.mode == 'time':
            if self.days:
                for day in self.days:
                    day_lower = day.strip().lower()
                    if day_lower not in WEEKDAYS:
                        raise ValueError(f"Invalid weekday in scheduler.days: {day}")
                    getattr(self.scheduler.every(), day_lower).at(self.time_str).do(self._safe_job_wrapper, job_func)
                logger.info(f"Scheduled to run on {self.days} at {self.time_str}")
            else:
                self.scheduler.every().day.at(self.time_str).do(self._safe_job_wrapper, job_func)
                logger.info(f"Scheduled to run daily at {self.time_str}")

        else:
            raise ValueError(f"Invalid scheduler mode: {self.mode}. Must be 'interval' or 'time'")

    def start(self, job_func: Callable) -> None:
        """
        Start the scheduler with the given job function and block until stopped.

        Args:
            job_func: Function to call on schedule (should run the crawler)
        """
        if self.is_running:
            logger.warning("Scheduler is already running")
            return

        logger.info(f"Starting scheduler in {self.mode} mode")
        self.configure(job_func)

        if self.run_on_start:
            logger.info("Running job immediately on start...")
            self._safe_job_wrapper(job_func)

        self.is_running = True
        self.stop_event.clear()
        self.thread = Thread(target=self._run_scheduler, daemon=True)
        self.thread.start()

        logger.info("Scheduler started. Press Ctrl+C to stop.")

        try:
            while self.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Received interrupt signal")
            self.stop()

    def _run_scheduler(self) -> None:
        while self.is_running and not self.stop_event.is_set():
            self.scheduler.run_pending()
            self.stop_event.wait(1)

    def _safe_job_wrapper(self, job_func: Callable):
        """
        Run one job; a failing job is logged and never stops the scheduler.
        """
        try:
            logger.info("=" * 70)
            logger.info(f"Starting scheduled job at {datetime.now().isoformat()}")
            logger.info("=" * 70)

            result = job_func()

            logger.info(f"Scheduled job completed at {datetime.now().isoformat()}")
            return result

        except Exception as e:
            logger.error(f"Scheduled job failed: {e}", exc_info=True)
            return None

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self.is_running:
            logger.warning("Scheduler is not running")
            return

        logger.info("Stopping scheduler...")
        self.is_running = False
        self.stop_event.set()

        if self.thread:
            self.thread.join(timeout=5)

        self.scheduler.clear()
        logger.info("Scheduler stopped")

    def get_next_run(self) -> Optional[datetime]:
        if not self.scheduler.get_jobs():
            return None
        return self.scheduler.next_run

    def get_status(self) -> Dict[str, Any]:
        next_run = self.get_next_run()
        return {
            'is_running': self.is_running,
            'mode': self.mode,
            'next_run': next_run.isoformat() if next_run else None,
            'jobs_count': len(self.scheduler.get_jobs())
        }
