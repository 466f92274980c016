"""
Persisted job table.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, TIMESTAMP, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from jobqueue.infra.database import Base


class JobRecord(Base):
    """
    Row of the ``jobs`` table.

    A row is eligible for a lease when ``unlock_at <= now()``. Leasing pushes
    ``unlock_at`` forward and increments ``attempts`` in the same statement.
    """

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    unlock_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Earliest time the job may be leased",
    )
    name: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Name of the handler that processes the job"
    )
    payload: Mapped[Any] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        server_default="{}",
        comment="Handler-specific payload",
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Number of leases taken",
    )

    __table_args__ = (
        Index("ix_jobs_unlock_at", "unlock_at"),
        Index("ix_jobs_name", "name"),
    )
