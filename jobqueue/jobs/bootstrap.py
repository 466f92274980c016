"""
Job processing wiring.

Builds the store and the job manager from settings, lets each handler
module register its handlers, and routes failures to Sentry.
"""

import importlib
from collections.abc import Callable, Iterable

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import JobStoreType, Settings
from jobqueue.infra.database import get_database
from jobqueue.infra.sentry import capture_error
from jobqueue.jobs.events import ANY_JOB
from jobqueue.jobs.job import Job
from jobqueue.jobs.manager import JobManager
from jobqueue.jobs.memory import InMemoryJobStore
from jobqueue.jobs.store import JobStore, SQLAlchemyJobStore

logger = get_logger(__name__)

HandlerInitializer = Callable[[JobManager], None]


def build_store(settings: Settings) -> JobStore:
    """Create the job store selected by ``settings.job_store``."""
    if settings.job_store == JobStoreType.MEMORY:
        return InMemoryJobStore()
    return SQLAlchemyJobStore(get_database(settings).SessionLocal)


def load_initializers(paths: Iterable[str]) -> list[HandlerInitializer]:
    """Resolve "package.module:function" strings to handler initializers."""
    initializers = []
    for path in paths:
        module_name, sep, attr = path.partition(":")
        if not sep or not module_name or not attr:
            raise ValueError(
                f"Invalid handler initializer '{path}', expected 'module:function'"
            )
        module = importlib.import_module(module_name)
        initializers.append(getattr(module, attr))
    return initializers


def report_job_failure(job: Job, error: BaseException) -> None:
    """Failure listener that forwards job errors to Sentry."""
    capture_error(
        error,
        {
            "err": f"error processing job '{job.name}': {error}",
            "job_id": str(job.id),
            "attempts": job.attempts,
        },
    )


def init_job_processing(
    store: JobStore,
    settings: Settings,
    initializers: Iterable[HandlerInitializer] | None = None,
) -> JobManager:
    """
    Create a job manager, register handlers and start polling.

    Handler initializers default to ``settings.job_handler_initializers``.

    Polling is not started in the test environment or when
    ``job_polling_enabled`` is off; callers then drive
    ``fetch_and_process`` themselves.
    """
    if initializers is None:
        initializers = load_initializers(settings.job_handler_initializers)

    sentry_enabled = bool(settings.sentry_dsn)
    job_manager = JobManager.from_settings(
        store, settings, report_error=capture_error if sentry_enabled else None
    )

    for init_handlers in initializers:
        init_handlers(job_manager)

    if sentry_enabled:
        job_manager.on_failure(ANY_JOB, report_job_failure)

    logger.info(
        "Job handlers registered",
        registered_handlers=job_manager.registered_names(),
    )

    if settings.job_polling_enabled and settings.environment != "test":
        job_manager.start_polling()

    return job_manager
