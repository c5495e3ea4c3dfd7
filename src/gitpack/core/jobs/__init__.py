"""
Bounded-concurrency execution of per-package git work.

Example:
    >>> from gitpack.core.jobs import JobScheduler, WorkItem
    >>> scheduler = JobScheduler(concurrency=2)
    >>> scheduler.run([WorkItem(state, producer, consumer)], title="Updating")
"""

from gitpack.core.jobs.scheduler import (
    DEFAULT_JOB_TIMEOUT,
    JobScheduler,
    ScheduleResult,
    SchedulerCallback,
    WorkItem,
    default_concurrency,
)

__all__ = [
    "DEFAULT_JOB_TIMEOUT",
    "JobScheduler",
    "ScheduleResult",
    "SchedulerCallback",
    "WorkItem",
    "default_concurrency",
]
