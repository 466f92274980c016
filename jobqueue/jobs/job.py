"""
In-memory view of one persisted job.
"""

import math
from datetime import UTC, datetime
from numbers import Real
from typing import TYPE_CHECKING, Any
from uuid import UUID

from jobqueue.jobs.exceptions import InvalidArgument

if TYPE_CHECKING:
    from jobqueue.jobs.store import JobStore

UnlockAt = datetime | float | int

# Default for Job.create; an explicit None payload is stored as JSON null
_NO_PAYLOAD: Any = object()


def check_unlock_at(unlock_at: Any) -> None:
    """
    Validate an ``unlock_at`` argument.

    Accepted values are a ``datetime`` (an absolute time, naive values are
    read as UTC) or a finite, non-negative number of seconds from the store's
    current time.
    """
    if isinstance(unlock_at, datetime):
        return
    if (
        isinstance(unlock_at, Real)
        and not isinstance(unlock_at, bool)
        and math.isfinite(unlock_at)
        and unlock_at >= 0
    ):
        return
    raise InvalidArgument(
        "Invalid type of unlock_at parameter",
        {"unlock_at": repr(unlock_at)},
    )


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


class Job:
    """
    A persisted unit of deferred work.

    All persistence goes through the store the job was loaded from. Only
    ``id`` is fixed; ``unlock_at`` and ``attempts`` change as the store
    leases and reschedules the job.
    """

    def __init__(
        self,
        store: "JobStore",
        *,
        id: UUID,
        name: str,
        payload: Any,
        attempts: int,
        created_at: datetime,
        unlock_at: datetime,
    ):
        self._store = store
        self.id = id
        self.name = name
        self.payload = payload
        self.attempts = attempts
        self.created_at = created_at
        self.unlock_at = unlock_at

    @classmethod
    async def create(
        cls,
        store: "JobStore",
        name: str,
        payload: Any = _NO_PAYLOAD,
        *,
        unlock_at: UnlockAt = 0,
    ) -> "Job":
        """
        Create and place a new job.

        Args:
            store: Store that persists the job
            name: Name of the handler that will process the job
            payload: Any JSON-serializable value including None, ``{}`` when omitted
            unlock_at: Absolute time or offset in seconds from now

        Returns:
            The stored job with its assigned id and timestamps
        """
        check_unlock_at(unlock_at)
        if payload is _NO_PAYLOAD:
            payload = {}
        return await store.create_job(name, payload, unlock_at=unlock_at)

    @classmethod
    async def get_by_id(cls, store: "JobStore", job_id: UUID) -> "Job | None":
        return await store.get_job_by_id(job_id)

    async def set_unlock_at(self, unlock_at: UnlockAt = 0) -> None:
        """Move the job's unlock time; the store computes the absolute value."""
        check_unlock_at(unlock_at)
        modified = await self._store.set_job_unlock_at(self.id, unlock_at)
        self.unlock_at = modified.unlock_at

    async def delete(self) -> None:
        """
        Delete the job. The job handler pipeline calls this once the job is
        processed.
        """
        await self._store.delete_job(self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "payload": self.payload,
            "attempts": self.attempts,
            "created_at": self.created_at,
            "unlock_at": self.unlock_at,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Job):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<Job id={self.id} name={self.name!r} attempts={self.attempts}>"
