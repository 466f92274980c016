"""
In-process job store.

Suitable for single-process deployments and tests. Leases are atomic within
one event loop; the store is not shared between processes.
"""

import asyncio
import copy
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from jobqueue.jobs.exceptions import JobNotFound
from jobqueue.jobs.job import Job, UnlockAt, as_utc
from jobqueue.jobs.schemas import QueueStats


def _utc_now() -> datetime:
    return datetime.now(UTC)


class InMemoryJobStore:
    """Dictionary-backed store with an injectable clock."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or _utc_now
        self._rows: dict[UUID, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def create_job(
        self, name: str, payload: Any, *, unlock_at: UnlockAt = 0
    ) -> Job:
        now = self._clock()
        row = {
            "id": uuid4(),
            "name": name,
            "payload": copy.deepcopy(payload),
            "attempts": 0,
            "created_at": now,
            "unlock_at": self._resolve(unlock_at, now),
        }
        async with self._lock:
            self._rows[row["id"]] = row
        return self._to_job(row)

    async def get_job_by_id(self, job_id: UUID) -> Job | None:
        row = self._rows.get(job_id)
        return self._to_job(row) if row else None

    async def set_job_unlock_at(self, job_id: UUID, unlock_at: UnlockAt) -> Job:
        async with self._lock:
            row = self._rows.get(job_id)
            if row is None:
                raise JobNotFound(job_id)
            row["unlock_at"] = self._resolve(unlock_at, self._clock())
            return self._to_job(row)

    async def delete_job(self, job_id: UUID) -> None:
        async with self._lock:
            self._rows.pop(job_id, None)

    async def fetch_jobs(self, count: int, lease_duration: float) -> list[Job]:
        if count <= 0:
            return []

        async with self._lock:
            now = self._clock()
            eligible = sorted(
                (row for row in self._rows.values() if row["unlock_at"] <= now),
                key=lambda row: row["unlock_at"],
            )[:count]
            for row in eligible:
                row["unlock_at"] = now + timedelta(seconds=float(lease_duration))
                row["attempts"] += 1
            return [self._to_job(row) for row in eligible]

    async def now(self) -> datetime:
        return self._clock()

    async def stats(self) -> QueueStats:
        now = self._clock()
        ready = sum(1 for row in self._rows.values() if row["unlock_at"] <= now)
        return QueueStats(total=len(self._rows), ready=ready)

    @staticmethod
    def _resolve(unlock_at: UnlockAt, now: datetime) -> datetime:
        if isinstance(unlock_at, datetime):
            return as_utc(unlock_at)
        return now + timedelta(seconds=float(unlock_at))

    def _to_job(self, row: dict[str, Any]) -> Job:
        return Job(
            self,
            id=row["id"],
            name=row["name"],
            payload=copy.deepcopy(row["payload"]),
            attempts=row["attempts"],
            created_at=row["created_at"],
            unlock_at=row["unlock_at"],
        )
