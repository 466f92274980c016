from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from jobqueue.config.settings import Settings, SettingsDep
from jobqueue.jobs.manager import JobManager
from jobqueue.jobs.schemas import ManagerStatus, QueueStats
from jobqueue.jobs.store import JobStore
from jobqueue.v1.core.exceptions import create_success_response

router = APIRouter()


class StoreHealth(BaseModel):
    """Job store health status."""

    connected: bool
    response_time_ms: float | None = None
    queue: QueueStats | None = None
    error: str | None = None


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_job_manager(request: Request) -> JobManager | None:
    return getattr(request.app.state, "job_manager", None)


@router.get("/healthz", response_model=dict)
async def health_check(
    settings: Settings = SettingsDep,
    store: JobStore = Depends(get_job_store),
    job_manager: JobManager | None = Depends(get_job_manager),
):
    """Health check with job store and job manager status."""

    store_health = await _check_store_health(store)
    manager_status: ManagerStatus | None = (
        job_manager.status() if job_manager else None
    )

    health_data = {
        "ok": store_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
        "store": store_health.model_dump(mode="json"),
        "worker": manager_status.model_dump() if manager_status else None,
    }

    return create_success_response(data=health_data)


async def _check_store_health(store: JobStore) -> StoreHealth:
    """Check store connectivity, response time and queue depth."""
    start_time = datetime.now(UTC)

    try:
        queue = await store.stats()
    except Exception as e:
        return StoreHealth(connected=False, error=str(e))

    response_time_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
    return StoreHealth(
        connected=True, response_time_ms=round(response_time_ms, 2), queue=queue
    )
