"""
Pydantic views of jobs and queue state for the health endpoint and the CLI.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class JobView(BaseModel):
    """Serializable snapshot of a job."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    payload: Any = None
    attempts: int
    created_at: datetime
    unlock_at: datetime


class QueueStats(BaseModel):
    """Queue counters reported by a store."""

    total: int = Field(..., description="Number of stored jobs")
    ready: int = Field(..., description="Jobs eligible for a lease right now")

    @property
    def locked(self) -> int:
        return self.total - self.ready


class ManagerStatus(BaseModel):
    """State of a job manager as seen by the health endpoint."""

    polling: bool
    poll_interval: float
    job_lock_time: float
    batch_size: int
    in_flight_batches: int
    handlers: list[str]
