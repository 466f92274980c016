"""
Errors raised by the job queue.

Only structural misuse (``InvalidArgument``, ``AlreadyRegistered``) reaches
callers. ``NoHandler`` is created internally and travels the same failure
path as a handler exception.
"""

from typing import Any


class JobQueueError(Exception):
    """Base exception for the job queue."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgument(JobQueueError, ValueError):
    """Raised when an argument has an unsupported type or value."""


class AlreadyRegistered(JobQueueError):
    """Raised when a second primary handler is registered for a job name."""

    def __init__(self, name: str):
        super().__init__(
            f"attempt to add a second handler for '{name}' jobs", {"job_name": name}
        )
        self.name = name


class NoHandler(JobQueueError):
    """A leased job has no registered handler."""

    def __init__(self, name: str):
        super().__init__(
            f"handler is not registered for '{name}'", {"job_name": name}
        )
        self.name = name


class JobNotFound(JobQueueError):
    """Raised by a store when the job does not exist."""

    def __init__(self, job_id: Any):
        super().__init__(f"job {job_id} not found", {"job_id": str(job_id)})
        self.job_id = job_id
