"""
Deferred job queue.

This package provides an at-least-once job system with:
- Store-side atomic leases, safe for many concurrent pollers
- One primary handler per job name
- Completion and failure listeners with a catch-all key
- Superlinear backoff for failed jobs
"""

from jobqueue.jobs.events import ANY_JOB, EventBus
from jobqueue.jobs.exceptions import (
    AlreadyRegistered,
    InvalidArgument,
    JobNotFound,
    JobQueueError,
    NoHandler,
)
from jobqueue.jobs.job import Job
from jobqueue.jobs.manager import JobManager
from jobqueue.jobs.memory import InMemoryJobStore
from jobqueue.jobs.store import JobStore, SQLAlchemyJobStore

__all__ = [
    "ANY_JOB",
    "AlreadyRegistered",
    "EventBus",
    "InMemoryJobStore",
    "InvalidArgument",
    "Job",
    "JobManager",
    "JobNotFound",
    "JobQueueError",
    "JobStore",
    "NoHandler",
    "SQLAlchemyJobStore",
]
