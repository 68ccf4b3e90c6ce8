"""Background job scheduling with APScheduler.

Two kinds of work run off the request path:
- periodic jobs (the hourly expired-confirmation sweep), registered before start
- one-off jobs submitted at runtime (the alert sweep for a new listing)
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lostfound.logging import get_logger

logger = get_logger(__name__, component="scheduler")


class SchedulerService:
    """
    Wraps a BackgroundScheduler running jobs on a worker thread pool.

    The main thread stays free to serve HTTP requests and handle signals.
    """

    def __init__(
        self,
        max_workers: int = 4,
        misfire_grace_time: int = 300,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            max_workers: Size of the worker thread pool
            misfire_grace_time: Seconds a periodic run may be late and still execute
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.shutdown_event = shutdown_event
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers)},
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": misfire_grace_time,
            },
            timezone=timezone.utc,
        )

    def add_periodic(
        self,
        func: Callable[[], object],
        interval_seconds: int,
        job_id: str,
        name: Optional[str] = None,
        run_immediately: bool = False,
    ) -> None:
        """
        Register a job that repeats every ``interval_seconds``.

        May be called before or after start(); re-registering an id replaces it.
        """
        kwargs = {}
        if run_immediately:
            kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            func=func,
            trigger=IntervalTrigger(seconds=interval_seconds, timezone=timezone.utc),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
            **kwargs,
        )

        logger.info(
            f"Registered periodic job {job_id} every {interval_seconds} seconds",
            extra={
                "event": "scheduler.job.registered",
                "job_id": job_id,
                "interval_seconds": interval_seconds,
            },
        )

    def start(self) -> None:
        """Start the worker threads."""
        self.scheduler.start()
        logger.info(
            "Scheduler started",
            extra={"event": "scheduler.started", "jobs": [job.id for job in self.scheduler.get_jobs()]},
        )

    def submit(self, func: Callable, *args, name: Optional[str] = None) -> Optional[str]:
        """
        Run ``func(*args)`` once, as soon as a worker is free.

        When the scheduler is not running (CLI commands, tests) the call runs
        inline instead; an error it raises is logged, not propagated, so the
        submitting request behaves the same either way.

        Returns:
            The scheduled job id, or None when the call ran inline
        """
        job_name = name or getattr(func, "__name__", "task")

        if not self.is_running():
            try:
                func(*args)
            except Exception as e:
                logger.error(
                    f"Inline task {job_name} failed: {e}",
                    exc_info=True,
                    extra={"event": "scheduler.task.failed", "task": job_name},
                )
            return None

        job_id = f"{job_name}-{uuid.uuid4().hex[:12]}"
        self.scheduler.add_job(func=func, args=list(args), id=job_id, name=job_name, misfire_grace_time=None)
        logger.debug(
            f"Submitted task {job_name}",
            extra={"event": "scheduler.task.submitted", "job_id": job_id, "task": job_name},
        )
        return job_id

    def shutdown(self, wait: bool = False) -> None:
        """
        Stop the scheduler.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info("Shutting down scheduler", extra={"event": "scheduler.stopping", "wait_for_jobs": wait})

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self, job_id: str) -> Optional[datetime]:
        """Next run of a registered job, or None if unknown or not yet started."""
        job = self.scheduler.get_job(job_id)
        return getattr(job, "next_run_time", None) if job else None
