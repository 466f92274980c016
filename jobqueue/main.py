from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobqueue.config.logging import get_logger, setup_logging
from jobqueue.config.settings import Settings, settings as default_settings
from jobqueue.infra.database import close_database
from jobqueue.infra.sentry import init_sentry
from jobqueue.jobs.bootstrap import HandlerInitializer, build_store, init_job_processing
from jobqueue.jobs.store import JobStore
from jobqueue.v1.core.exceptions import (
    RequestContextMiddleware,
    general_exception_handler,
    http_exception_handler,
)
from jobqueue.v1.healthz import router as health_router

logger = get_logger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 30


def create_app(
    settings: Settings | None = None,
    store: JobStore | None = None,
    initializers: Iterable[HandlerInitializer] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings

    # Initialize structured logging and error reporting
    setup_logging(settings)
    init_sentry(settings)

    job_store = store if store is not None else build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.job_manager = init_job_processing(job_store, settings, initializers)
        try:
            yield
        finally:
            settled = await app.state.job_manager.shutdown(
                timeout=SHUTDOWN_TIMEOUT_SECONDS
            )
            logger.info("Job manager stopped", settled=settled)
            await close_database()

    app = FastAPI(
        title=settings.app_name,
        description="Deferred job queue and worker dispatcher",
        version=settings.version,
        debug=settings.debug,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.job_store = job_store

    # Add middleware
    app.add_middleware(RequestContextMiddleware)

    # Add exception handlers
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers with /v1 prefix
    app.include_router(health_router, prefix="/v1", tags=["health"])

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jobqueue.main:create_app",
        factory=True,
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )
