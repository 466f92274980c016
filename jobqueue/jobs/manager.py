"""
Polling job manager.

Leases batches of jobs from a store, dispatches each job to the handler
registered for its name and publishes lifecycle events.
"""

import asyncio
from collections.abc import Callable, Hashable
from typing import Any

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import Settings
from jobqueue.jobs.events import ANY_JOB, EventBus, Listener, Unsubscribe, call_maybe_async
from jobqueue.jobs.exceptions import AlreadyRegistered, InvalidArgument, NoHandler
from jobqueue.jobs.job import Job
from jobqueue.jobs.schemas import ManagerStatus
from jobqueue.jobs.store import JobStore

logger = get_logger(__name__)

Handler = Callable[[Job], Any]
ErrorReporter = Callable[[BaseException, dict[str, Any]], None]


class JobManager:
    """
    Dispatches leased jobs to their handlers.

    Features:
    - One primary handler per job name, checked at registration time
    - Any number of completion and failure listeners per name, plus
      catch-all listeners under ``ANY_JOB``
    - Failed jobs are rescheduled ``job_lock_time * attempts ** 1.5``
      seconds ahead and are retried until a handler succeeds
    - Polling never stops on fetch errors; they go to ``report_error``

    Several managers, in one process or many, may share a store. The store
    guarantees that a job is leased to only one of them at a time.
    """

    def __init__(
        self,
        store: JobStore,
        *,
        poll_interval: float = 5,
        job_lock_time: float = 120,
        batch_size: int = 5,
        report_error: ErrorReporter | None = None,
    ):
        self.store = store
        self.poll_interval = poll_interval
        self.job_lock_time = job_lock_time
        self.batch_size = batch_size
        self.report_error = report_error

        self._handlers: dict[str, Handler] = {}
        self._complete_events = EventBus(catch_all=ANY_JOB, name="complete")
        self._failure_events = EventBus(catch_all=ANY_JOB, name="failure")
        self._poll_task: asyncio.Task | None = None
        self._batches: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        store: JobStore,
        settings: Settings,
        report_error: ErrorReporter | None = None,
    ) -> "JobManager":
        return cls(
            store,
            poll_interval=settings.job_poll_interval,
            job_lock_time=settings.job_lock_time,
            batch_size=settings.job_batch_size,
            report_error=report_error,
        )

    # Handlers and listeners ---------------------------------------------

    def register(self, name: str, handler: Handler) -> Callable[[], None]:
        """
        Set the main handler for the jobs with the given name.

        Any name can have only one main handler. A job whose name has no
        handler fails and is rescheduled.

        Returns a function that removes the handler.
        """
        if not isinstance(name, str) or not name:
            raise InvalidArgument(
                "job name must be a non-empty string", {"name": repr(name)}
            )
        if not callable(handler):
            raise InvalidArgument(f"handler for '{name}' is not callable")

        if name in self._handlers:
            logger.error("Attempt to add a second job handler", job_name=name)
            raise AlreadyRegistered(name)

        self._handlers[name] = handler
        logger.debug("Job handler registered", job_name=name)

        def unregister() -> None:
            if self._handlers.get(name) is handler:
                del self._handlers[name]

        return unregister

    def handler_for(self, name: str) -> Handler | None:
        return self._handlers.get(name)

    def registered_names(self) -> list[str]:
        return sorted(self._handlers)

    def on_complete(self, name: Hashable, listener: Listener) -> Unsubscribe:
        """
        Add a completion listener for ``name`` or ``ANY_JOB``.

        Completion listeners run in parallel with ``(job, result)`` after the
        main handler succeeds and before the job is deleted.
        """
        return self._complete_events.subscribe(name, listener)

    def on_failure(self, name: Hashable, listener: Listener) -> Unsubscribe:
        """
        Add a failure listener for ``name`` or ``ANY_JOB``.

        Failure listeners run in parallel with ``(job, error)`` after the main
        handler fails (or is missing) and after the job is rescheduled.
        """
        return self._failure_events.subscribe(name, listener)

    # Polling ------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self) -> None:
        """Start fetching and processing a batch every ``poll_interval`` seconds."""
        if self.is_polling:
            logger.warning("Polling is already running")
            return

        logger.info(
            "Starting polling",
            poll_interval=self.poll_interval,
            job_lock_time=self.job_lock_time,
            batch_size=self.batch_size,
        )
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll_loop(), name="job-manager-poll"
        )

    def stop_polling(self) -> None:
        """Stop starting new batches. Batches in flight keep running."""
        logger.info("Stopping polling", in_flight_batches=len(self._batches))
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def shutdown(self, timeout: float | None = None) -> bool:
        """
        Stop polling and wait for in-flight batches.

        Returns False if some batches were still running after ``timeout``.
        """
        self.stop_polling()
        if not self._batches:
            return True

        _, pending = await asyncio.wait(set(self._batches), timeout=timeout)
        if pending:
            logger.warning(
                "Job manager stopped with batches in flight",
                in_flight_batches=len(pending),
            )
            return False
        return True

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            batch = asyncio.create_task(self._poll_once())
            self._batches.add(batch)
            batch.add_done_callback(self._batches.discard)

    async def _poll_once(self) -> None:
        try:
            await self.fetch_and_process()
        except Exception as exc:
            logger.exception("Cannot fetch jobs")
            self._report(exc, {"err": f"cannot fetch jobs: {exc}"})

    def _report(self, exc: BaseException, extra: dict[str, Any]) -> None:
        if self.report_error is None:
            return
        try:
            self.report_error(exc, extra)
        except Exception:
            logger.exception("Error reporter failed")

    # Fetching and processing --------------------------------------------

    async def fetch(
        self, count: int | None = None, lease_duration: float | None = None
    ) -> list[Job]:
        """Lease up to ``count`` eligible jobs for ``lease_duration`` seconds."""
        count = self.batch_size if count is None else count
        lease_duration = self.job_lock_time if lease_duration is None else lease_duration

        logger.debug("Fetching jobs", count=count, lease_duration=lease_duration)
        jobs = await self.store.fetch_jobs(count, lease_duration)
        logger.debug("Jobs fetched", found=len(jobs))
        return jobs

    async def fetch_and_process(
        self, count: int | None = None, lease_duration: float | None = None
    ) -> list[Job]:
        """
        Fetch a batch and process its jobs concurrently.

        Waits for every job to settle; one slow or failing job does not
        affect the others. Returns the fetched batch.
        """
        jobs = await self.fetch(count, lease_duration)

        results = await asyncio.gather(
            *(self._process(job) for job in jobs), return_exceptions=True
        )
        for job, result in zip(jobs, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Cannot finalize job",
                    job_id=str(job.id),
                    job_name=job.name,
                    exc_info=result,
                )
        return jobs

    def backoff_delay(self, attempts: int) -> float:
        """Seconds until the next try of a job that has failed ``attempts`` leases."""
        return self.job_lock_time * (attempts**1.5)

    async def _process(self, job: Job) -> None:
        job_logger = logger.bind(
            job_id=str(job.id), job_name=job.name, attempts=job.attempts
        )
        handler = self._handlers.get(job.name)

        try:
            if handler is None:
                raise NoHandler(job.name)
            result = await call_maybe_async(handler, job)
            job_logger.debug("Job processed")
            await self._complete_events.publish(job.name, job, result)
            await job.delete()
        except Exception as exc:
            job_logger.error("Error processing job", error=str(exc), exc_info=True)
            await self._fail(job, exc)

    async def _fail(self, job: Job, error: Exception) -> None:
        await job.set_unlock_at(self.backoff_delay(job.attempts))
        logger.info(
            "Job rescheduled",
            job_id=str(job.id),
            job_name=job.name,
            attempts=job.attempts,
            unlock_at=job.unlock_at.isoformat(),
        )
        await self._failure_events.publish(job.name, job, error)

    def status(self) -> ManagerStatus:
        return ManagerStatus(
            polling=self.is_polling,
            poll_interval=self.poll_interval,
            job_lock_time=self.job_lock_time,
            batch_size=self.batch_size,
            in_flight_batches=len(self._batches),
            handlers=self.registered_names(),
        )
