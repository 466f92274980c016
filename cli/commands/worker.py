"""Worker Command - Run a polling job worker"""

import asyncio
import signal

import typer

from jobqueue.config.logging import get_logger, setup_logging
from jobqueue.config.settings import Settings, settings
from jobqueue.infra.sentry import init_sentry
from jobqueue.jobs.bootstrap import init_job_processing

from ..utils.formatting import print_info, print_success
from ..utils.store import open_store

logger = get_logger(__name__)


def worker(
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between polls"),
    batch_size: int | None = typer.Option(None, "--batch-size", help="Jobs fetched per poll"),
    lock_time: float | None = typer.Option(None, "--lock-time", help="Lease duration in seconds"),
    shutdown_timeout: float = typer.Option(30, "--shutdown-timeout", help="Seconds to wait for running jobs on exit"),
):
    """⚙️ Run a job worker until interrupted"""
    overrides = {
        "job_poll_interval": poll_interval,
        "job_batch_size": batch_size,
        "job_lock_time": lock_time,
    }
    worker_settings = settings.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )

    print_info(
        f"Starting worker (poll every {worker_settings.job_poll_interval}s, "
        f"batch {worker_settings.job_batch_size}, lease {worker_settings.job_lock_time}s)"
    )
    asyncio.run(run_worker(worker_settings, shutdown_timeout))
    print_success("Worker stopped")


async def run_worker(worker_settings: Settings, shutdown_timeout: float) -> None:
    setup_logging(worker_settings)
    init_sentry(worker_settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with open_store() as store:
        job_manager = init_job_processing(store, worker_settings)
        if not job_manager.is_polling:
            job_manager.start_polling()

        await stop.wait()

        logger.info("Shutting down worker")
        settled = await job_manager.shutdown(timeout=shutdown_timeout)
        if not settled:
            logger.warning("Worker exited before all jobs settled")
