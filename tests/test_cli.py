"""Tests for CLI commands"""

import asyncio
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from typer.testing import CliRunner

from cli.main import app
from jobqueue.jobs.memory import InMemoryJobStore


# Test fixtures
@pytest.fixture
def runner():
    """CLI test runner"""
    return CliRunner()


@pytest.fixture
def cli_store():
    """One in-memory store shared by every command of a test"""
    store = InMemoryJobStore()
    with patch("cli.utils.store.build_store", return_value=store):
        yield store


def create_job(store, name="job", payload=None, unlock_at=0):
    return asyncio.run(store.create_job(name, payload or {}, unlock_at=unlock_at))


class TestMainCommands:
    """Test main CLI commands"""

    def test_version(self, runner):
        """Test version option"""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "Job Queue CLI v1.0.0" in result.stdout

    def test_status_success(self, runner, cli_store):
        """Test status command with a reachable store"""
        create_job(cli_store)

        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "Connected Successfully" in result.stdout

    @patch("cli.utils.store.build_store")
    def test_status_failure(self, mock_build_store, runner):
        """Test status command with connection failure"""
        mock_build_store.side_effect = ConnectionError("Connection failed")

        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "Connection Failed" in result.stdout


class TestJobCommands:
    """Test job commands"""

    def test_enqueue(self, runner, cli_store):
        """Test enqueueing a job with a payload"""
        result = runner.invoke(app, ["jobs", "enqueue", "email", "--payload", '{"to": "a@b.c"}'])
        assert result.exit_code == 0
        assert "Enqueued job" in result.stdout

        (job,) = asyncio.run(cli_store.fetch_jobs(5, 60))
        assert job.name == "email"
        assert job.payload == {"to": "a@b.c"}

    def test_enqueue_with_delay(self, runner, cli_store):
        result = runner.invoke(app, ["jobs", "enqueue", "email", "--delay", "60"])
        assert result.exit_code == 0

        stats = asyncio.run(cli_store.stats())
        assert stats.total == 1
        assert stats.ready == 0

    def test_enqueue_invalid_payload(self, runner, cli_store):
        result = runner.invoke(app, ["jobs", "enqueue", "email", "--payload", "{oops"])
        assert result.exit_code == 1
        assert "not valid JSON" in result.stdout
        assert asyncio.run(cli_store.stats()).total == 0

    def test_enqueue_negative_delay(self, runner, cli_store):
        result = runner.invoke(app, ["jobs", "enqueue", "email", "--delay=-5"])
        assert result.exit_code == 1
        assert "Failed to enqueue job" in result.stdout

    def test_show(self, runner, cli_store):
        job = create_job(cli_store, "report", {"month": 5})

        result = runner.invoke(app, ["jobs", "show", str(job.id)])
        assert result.exit_code == 0
        assert str(job.id) in result.stdout
        assert "report" in result.stdout
        assert '"month": 5' in result.stdout

    def test_show_not_found(self, runner, cli_store):
        result = runner.invoke(app, ["jobs", "show", str(uuid4())])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_reschedule(self, runner, cli_store):
        job = create_job(cli_store, unlock_at=3600)

        result = runner.invoke(app, ["jobs", "reschedule", str(job.id)])
        assert result.exit_code == 0
        assert asyncio.run(cli_store.stats()).ready == 1

    def test_reschedule_not_found(self, runner, cli_store):
        result = runner.invoke(app, ["jobs", "reschedule", str(uuid4()), "--delay", "10"])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_delete_with_yes(self, runner, cli_store):
        job = create_job(cli_store)

        result = runner.invoke(app, ["jobs", "delete", str(job.id), "--yes"])
        assert result.exit_code == 0
        assert "Deleted job" in result.stdout
        assert asyncio.run(cli_store.get_job_by_id(job.id)) is None

    def test_delete_declined(self, runner, cli_store):
        job = create_job(cli_store)

        result = runner.invoke(app, ["jobs", "delete", str(job.id)], input="n\n")
        assert result.exit_code == 0
        assert "Nothing deleted" in result.stdout
        assert asyncio.run(cli_store.get_job_by_id(job.id)) is not None

    def test_stats(self, runner, cli_store):
        create_job(cli_store)
        create_job(cli_store, unlock_at=60)

        result = runner.invoke(app, ["jobs", "stats"])
        assert result.exit_code == 0
        assert "Total" in result.stdout
        assert "Ready" in result.stdout


class TestWorkerCommand:
    """Test worker command"""

    @patch("cli.commands.worker.run_worker", new_callable=AsyncMock)
    def test_worker_overrides(self, mock_run_worker, runner):
        result = runner.invoke(app, ["worker", "--poll-interval", "1.5", "--batch-size", "10"])
        assert result.exit_code == 0
        assert "Worker stopped" in result.stdout

        worker_settings, shutdown_timeout = mock_run_worker.call_args.args
        assert worker_settings.job_poll_interval == 1.5
        assert worker_settings.job_batch_size == 10
        assert worker_settings.job_lock_time == 120
        assert shutdown_timeout == 30
