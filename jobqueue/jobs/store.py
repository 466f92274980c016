"""
Job store contract and its PostgreSQL implementation.

The store is the single source of truth for jobs. Leasing must be atomic:
two concurrent ``fetch_jobs`` calls never return the same eligible job.
"""

from datetime import datetime, timedelta
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import Interval, delete, func, insert, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobqueue.config.logging import get_logger
from jobqueue.jobs.exceptions import JobNotFound
from jobqueue.jobs.job import Job, UnlockAt, as_utc
from jobqueue.jobs.models import JobRecord
from jobqueue.jobs.schemas import QueueStats

logger = get_logger(__name__)


class JobStore(Protocol):
    """Protocol for persistent job stores."""

    async def create_job(
        self, name: str, payload: Any, *, unlock_at: UnlockAt = 0
    ) -> Job:
        """
        Persist a new job.

        ``unlock_at`` is an absolute datetime or an offset in seconds from the
        store's current time.
        """
        ...

    async def get_job_by_id(self, job_id: UUID) -> Job | None:
        """Return the job or None when it does not exist."""
        ...

    async def set_job_unlock_at(self, job_id: UUID, unlock_at: UnlockAt) -> Job:
        """Update ``unlock_at`` and return the updated job."""
        ...

    async def delete_job(self, job_id: UUID) -> None:
        """Remove the job."""
        ...

    async def fetch_jobs(self, count: int, lease_duration: float) -> list[Job]:
        """
        Atomically lease up to ``count`` eligible jobs.

        Each leased job gets ``unlock_at = now + lease_duration`` and
        ``attempts + 1``.
        """
        ...

    async def now(self) -> datetime:
        """Current time according to the store."""
        ...

    async def stats(self) -> QueueStats:
        """Total and currently eligible job counts."""
        ...


class SQLAlchemyJobStore:
    """
    PostgreSQL job store.

    Every timestamp comes from the database clock, so workers with skewed
    clocks agree on eligibility. Leases are taken with a single
    ``UPDATE ... WHERE id IN (SELECT ... FOR UPDATE SKIP LOCKED)`` statement.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_job(
        self, name: str, payload: Any, *, unlock_at: UnlockAt = 0
    ) -> Job:
        stmt = (
            insert(JobRecord)
            .values(name=name, payload=payload, unlock_at=_unlock_at_value(unlock_at))
            .returning(JobRecord)
        )
        async with self._session_factory() as session:
            record = (await session.scalars(stmt)).one()
            await session.commit()

        logger.debug("Job created", job_id=str(record.id), job_name=name)
        return self._to_job(record)

    async def get_job_by_id(self, job_id: UUID) -> Job | None:
        async with self._session_factory() as session:
            record = await session.get(JobRecord, job_id)
        return self._to_job(record) if record else None

    async def set_job_unlock_at(self, job_id: UUID, unlock_at: UnlockAt) -> Job:
        stmt = (
            update(JobRecord)
            .where(JobRecord.id == job_id)
            .values(unlock_at=_unlock_at_value(unlock_at))
            .returning(JobRecord)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            record = (await session.scalars(stmt)).one_or_none()
            await session.commit()

        if record is None:
            raise JobNotFound(job_id)
        return self._to_job(record)

    async def delete_job(self, job_id: UUID) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(JobRecord).where(JobRecord.id == job_id))
            await session.commit()

    async def fetch_jobs(self, count: int, lease_duration: float) -> list[Job]:
        if count <= 0:
            return []

        candidates = (
            select(JobRecord.id)
            .where(JobRecord.unlock_at <= func.now())
            .order_by(JobRecord.unlock_at)
            .limit(count)
            .with_for_update(skip_locked=True)
        )
        stmt = (
            update(JobRecord)
            .where(JobRecord.id.in_(candidates))
            .values(
                unlock_at=func.now() + _interval(lease_duration),
                attempts=JobRecord.attempts + 1,
            )
            .returning(JobRecord)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            records = (await session.scalars(stmt)).all()
            await session.commit()

        return [self._to_job(record) for record in records]

    async def now(self) -> datetime:
        async with self._session_factory() as session:
            return await session.scalar(select(func.now()))

    async def stats(self) -> QueueStats:
        stmt = select(
            func.count(JobRecord.id),
            func.count(JobRecord.id).filter(JobRecord.unlock_at <= func.now()),
        )
        async with self._session_factory() as session:
            total, ready = (await session.execute(stmt)).one()
        return QueueStats(total=total or 0, ready=ready or 0)

    def _to_job(self, record: JobRecord) -> Job:
        return Job(
            self,
            id=record.id,
            name=record.name,
            payload=record.payload,
            attempts=record.attempts,
            created_at=record.created_at,
            unlock_at=record.unlock_at,
        )


def _interval(seconds: float):
    return literal(timedelta(seconds=float(seconds)), Interval())


def _unlock_at_value(unlock_at: UnlockAt):
    """Absolute datetimes are stored as given, offsets are added to now()."""
    if isinstance(unlock_at, datetime):
        return as_utc(unlock_at)
    return func.now() + _interval(unlock_at)
