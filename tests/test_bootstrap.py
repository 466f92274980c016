"""Tests for job processing wiring."""

from datetime import UTC, datetime
from unittest.mock import patch
from uuid import uuid4

import pytest

from jobqueue.config.settings import JobStoreType
from jobqueue.jobs.bootstrap import (
    build_store,
    init_job_processing,
    load_initializers,
    report_job_failure,
)
from jobqueue.jobs.job import Job
from jobqueue.jobs.memory import InMemoryJobStore
from jobqueue.jobs.store import SQLAlchemyJobStore

SENTRY_DSN = "https://public@sentry.example.com/1"


def init_noop_handler(job_manager):
    job_manager.register("noop", lambda job: None)


class TestBuildStore:
    def test_memory_store(self, test_settings):
        assert isinstance(build_store(test_settings), InMemoryJobStore)

    @pytest.mark.asyncio
    async def test_postgres_store(self, test_settings):
        from jobqueue.infra.database import close_database

        settings = test_settings.model_copy(update={"job_store": JobStoreType.POSTGRES})
        try:
            assert isinstance(build_store(settings), SQLAlchemyJobStore)
        finally:
            await close_database()


class TestLoadInitializers:
    def test_resolves_module_function_paths(self):
        initializers = load_initializers(["jobqueue.jobs.bootstrap:build_store"])
        assert initializers == [build_store]

    @pytest.mark.parametrize("path", ["jobqueue.jobs.bootstrap", ":build_store", "jobqueue:"])
    def test_rejects_malformed_paths(self, path):
        with pytest.raises(ValueError, match="expected 'module:function'"):
            load_initializers([path])

    def test_missing_attribute(self):
        with pytest.raises(AttributeError):
            load_initializers(["jobqueue.jobs.bootstrap:no_such_initializer"])


class TestInitJobProcessing:
    """Test building a job manager from settings."""

    @pytest.mark.asyncio
    async def test_registers_handlers_without_polling_in_tests(self, store, test_settings):
        manager = init_job_processing(store, test_settings, [init_noop_handler])

        assert manager.registered_names() == ["noop"]
        assert manager.is_polling is False
        assert manager.report_error is None
        assert manager.batch_size == test_settings.job_batch_size

    @pytest.mark.asyncio
    async def test_initializers_default_to_settings(self, store, test_settings):
        settings = test_settings.model_copy(
            update={"job_handler_initializers": [f"{__name__}:init_noop_handler"]}
        )

        manager = init_job_processing(store, settings)

        assert manager.registered_names() == ["noop"]

    @pytest.mark.asyncio
    async def test_starts_polling_outside_tests(self, store, test_settings):
        settings = test_settings.model_copy(update={"environment": "development"})

        manager = init_job_processing(store, settings, [])
        try:
            assert manager.is_polling is True
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_polling_disabled(self, store, test_settings):
        settings = test_settings.model_copy(
            update={"environment": "development", "job_polling_enabled": False}
        )

        manager = init_job_processing(store, settings, [])

        assert manager.is_polling is False

    @pytest.mark.asyncio
    async def test_failures_go_to_sentry_when_enabled(self, store, test_settings):
        settings = test_settings.model_copy(update={"sentry_dsn": SENTRY_DSN})

        def failing(job_manager):
            def handler(job):
                raise RuntimeError("Failure!")

            job_manager.register("job", handler)

        with patch("jobqueue.jobs.bootstrap.capture_error") as capture:
            manager = init_job_processing(store, settings, [failing])
            job = await Job.create(store, "job")
            await manager.fetch_and_process()

        assert manager.report_error is capture
        capture.assert_called_once()
        error, extra = capture.call_args.args
        assert str(error) == "Failure!"
        assert extra["job_id"] == str(job.id)
        assert extra["err"] == "error processing job 'job': Failure!"

    @pytest.mark.asyncio
    async def test_failures_not_reported_without_sentry(self, store, test_settings):
        with patch("jobqueue.jobs.bootstrap.capture_error") as capture:
            manager = init_job_processing(store, test_settings, [])
            await Job.create(store, "ghost")
            await manager.fetch_and_process()

        capture.assert_not_called()


def test_report_job_failure_forwards_to_sentry():
    job = Job(
        InMemoryJobStore(),
        id=uuid4(),
        name="job",
        payload={},
        attempts=3,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
        unlock_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
    error = RuntimeError("boom")

    with patch("jobqueue.infra.sentry.sentry_sdk.capture_exception") as capture:
        report_job_failure(job, error)

    capture.assert_called_once()
    assert capture.call_args.args == (error,)
    assert capture.call_args.kwargs["extras"]["attempts"] == 3
