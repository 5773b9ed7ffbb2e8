"""
Shopsignal Recalculation Scheduler
==================================

Runs "recalculate all" on a cron schedule with APScheduler.

Features:
    - Cron trigger from settings (default: every hour at minute 0, UTC)
    - Manual trigger support
    - Run history tracking

Usage:
    from shopsignal.orchestrator.scheduler import RecalculationScheduler

    scheduler = RecalculationScheduler(pipeline)
    scheduler.start(blocking=True)

Configuration:
    SCHEDULER_CRON_HOUR: Hour field of the cron trigger (default: *)
    SCHEDULER_CRON_MINUTE: Minute field of the cron trigger (default: 0)
    SCHEDULER_TIMEZONE: Timezone (default: UTC)
    SCHEDULER_MISFIRE_GRACE: Seconds a missed run may still start (default: 600)
"""

import logging
import signal
from dataclasses import dataclass
from datetime import datetime
from threading import Event
from typing import Any, Dict, Optional

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..data.config import SchedulerConfig, get_settings
from ..data.data_models import utcnow
from .recalculation import (
    RecalculationError,
    RecalculationPipeline,
    RecalculationResult,
    RecalculationStatus,
)

logger = logging.getLogger(__name__)

JOB_ID = "interest_recalculation"
FAILED = "failed"


@dataclass
class RunHistory:
    """Tracks scheduler run history."""
    last_run_at: Optional[datetime] = None
    last_run_status: Optional[str] = None
    last_run_duration: Optional[float] = None
    consecutive_failures: int = 0
    total_runs: int = 0
    total_successes: int = 0
    total_failures: int = 0

    def record_run(self, status: str, duration: float):
        """
        Record a run.

        A partial failure still counts as a success: the scores that could
        be written were written.
        """
        self.last_run_at = utcnow()
        self.last_run_status = status
        self.last_run_duration = duration
        self.total_runs += 1

        if status in (RecalculationStatus.COMPLETED.value, RecalculationStatus.PARTIAL_FAILURE.value):
            self.total_successes += 1
            self.consecutive_failures = 0
        else:
            self.total_failures += 1
            self.consecutive_failures += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_status": self.last_run_status,
            "last_run_duration": self.last_run_duration,
            "consecutive_failures": self.consecutive_failures,
            "total_runs": self.total_runs,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "success_rate": (
                self.total_successes / self.total_runs * 100
                if self.total_runs > 0 else 0
            ),
        }


class RecalculationScheduler:
    """Background cron runner of a RecalculationPipeline."""

    def __init__(
        self,
        pipeline: RecalculationPipeline,
        config: Optional[SchedulerConfig] = None,
    ):
        """
        Args:
            pipeline: Pipeline executed on each tick
            config: Scheduler configuration (defaults to settings.scheduler)
        """
        self.pipeline = pipeline
        self.config = config or get_settings().scheduler
        self._scheduler: Optional[BackgroundScheduler] = None
        self._stop_event = Event()
        self._history = RunHistory()

        logger.info(
            f"RecalculationScheduler initialized: "
            f"schedule={self.config.get_cron_expression()} {self.config.timezone}"
        )

    @property
    def is_running(self) -> bool:
        if self._scheduler is None:
            return False
        return self._scheduler.running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, blocking: bool = False):
        """
        Start the scheduler.

        Args:
            blocking: If True, blocks until SIGINT/SIGTERM
        """
        if self.is_running:
            logger.warning("Scheduler is already running")
            return

        self._scheduler = BackgroundScheduler(timezone=self.config.timezone)
        self._scheduler.add_job(
            self._execute,
            trigger=CronTrigger(
                hour=self.config.cron_hour,
                minute=self.config.cron_minute,
                timezone=self.config.timezone,
            ),
            id=JOB_ID,
            name="Shopsignal interest recalculation",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.config.misfire_grace_time,
        )
        self._scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

        self._scheduler.start()
        logger.info(f"Scheduler started. Next run at: {self._get_next_run_time()}")

        if blocking:
            self._run_blocking()

    def stop(self, wait: bool = True):
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            logger.info("Scheduler stopped")
        self._stop_event.set()

    def _run_blocking(self):
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, stopping scheduler...")
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        logger.info("Scheduler running in blocking mode. Press Ctrl+C to stop.")
        self._stop_event.wait()

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def trigger_now(self) -> Optional[RecalculationResult]:
        """Run immediately, outside the cron schedule."""
        logger.info("Triggering immediate recalculation")
        return self._execute()

    def _execute(self) -> Optional[RecalculationResult]:
        try:
            result = self.pipeline.run()
        except RecalculationError as e:
            logger.error(f"Scheduled recalculation aborted: {e}")
            self._history.record_run(FAILED, 0)
            return None

        self._history.record_run(result.status.value, result.duration_seconds or 0)
        return result

    def _get_next_run_time(self) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        if job is None:
            return None
        return job.next_run_time

    def _on_job_executed(self, event: JobExecutionEvent):
        logger.info(f"Job {event.job_id} executed successfully")

    def _on_job_error(self, event: JobExecutionEvent):
        logger.error(f"Job {event.job_id} raised an exception: {event.exception}")

    def _on_job_missed(self, event: JobExecutionEvent):
        logger.warning(f"Job {event.job_id} missed its scheduled time")

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        next_run = self._get_next_run_time()
        return {
            "is_running": self.is_running,
            "config": {
                "schedule": self.config.get_cron_expression(),
                "timezone": self.config.timezone,
                "misfire_grace_time": self.config.misfire_grace_time,
            },
            "next_run": next_run.isoformat() if next_run else None,
            "history": self._history.to_dict(),
        }

    def get_run_history(self) -> RunHistory:
        return self._history


def generate_cron_entry(
    python_path: str = "python",
    script_path: str = "scripts/cron_recalculate.py",
    log_file: str = "/var/log/shopsignal/recalculate.log",
    config: Optional[SchedulerConfig] = None,
) -> str:
    """
    Crontab line running the single-shot script on the configured schedule.

    Example:
        0 * * * * python scripts/cron_recalculate.py >> /var/log/shopsignal/recalculate.log 2>&1
    """
    config = config or get_settings().scheduler
    return f"{config.get_cron_expression()} {python_path} {script_path} >> {log_file} 2>&1"
