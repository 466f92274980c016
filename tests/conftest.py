import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from jobqueue.config.settings import JobStoreType, Settings, get_settings
from jobqueue.infra.database import Base
from jobqueue.jobs.manager import JobManager
from jobqueue.jobs.memory import InMemoryJobStore
from jobqueue.jobs.store import SQLAlchemyJobStore

# Import models to ensure they're registered
from jobqueue.jobs import models  # noqa: F401


class FakeClock:
    """Manually advanced clock for the in-memory store."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryJobStore:
    """In-memory job store driven by the fake clock."""
    return InMemoryJobStore(clock=clock)


@pytest.fixture
def manager(store) -> JobManager:
    """Job manager with default settings over the in-memory store."""
    return JobManager(store)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        job_store=JobStoreType.MEMORY,
        sentry_dsn=None,
        debug=False,
    )


@pytest.fixture
async def pg_engine():
    """Create a test database engine."""
    database_url = os.getenv("DATABASE_URL")

    if not database_url or "postgresql" not in database_url:
        # Skip database tests if no PostgreSQL available
        pytest.skip("No PostgreSQL database available for testing")

    engine = create_async_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text("DELETE FROM jobs"))

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("DELETE FROM jobs"))
    await engine.dispose()


@pytest.fixture
def pg_store(pg_engine) -> SQLAlchemyJobStore:
    """PostgreSQL job store on a clean jobs table."""
    return SQLAlchemyJobStore(async_sessionmaker(pg_engine, expire_on_commit=False))


@pytest.fixture
def app(test_settings, store):
    """Create a test FastAPI application over the in-memory store."""
    from jobqueue.main import create_app

    app = create_app(settings=test_settings, store=store, initializers=())
    app.dependency_overrides[get_settings] = lambda: test_settings
    return app


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
