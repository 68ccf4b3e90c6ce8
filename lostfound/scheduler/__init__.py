"""Background scheduling of periodic sweeps and one-off tasks."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
