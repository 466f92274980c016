"""Job store access for CLI commands"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from jobqueue.config.settings import JobStoreType, settings
from jobqueue.infra.database import close_database
from jobqueue.jobs.bootstrap import build_store
from jobqueue.jobs.store import JobStore

from .formatting import print_warning

T = TypeVar("T")


@asynccontextmanager
async def open_store() -> AsyncIterator[JobStore]:
    """Build the configured store and release its connections afterwards"""
    if settings.job_store == JobStoreType.MEMORY:
        print_warning("JOB_STORE=memory: jobs will not outlive this command")
    try:
        yield build_store(settings)
    finally:
        await close_database()


def run_with_store(func: Callable[[JobStore], Awaitable[T]]) -> T:
    """Run an async function against the configured store"""

    async def runner() -> T:
        async with open_store() as store:
            return await func(store)

    return asyncio.run(runner())
