"""Job Commands - Inspect and manage queued jobs"""

import json
from uuid import UUID

import typer
from rich.console import Console
from rich.prompt import Confirm

from jobqueue.jobs.exceptions import JobQueueError
from jobqueue.jobs.job import Job
from jobqueue.jobs.schemas import JobView

from ..utils.formatting import (
    create_stats_table,
    display_job,
    print_error,
    print_info,
    print_success,
)
from ..utils.store import run_with_store

console = Console()
app = typer.Typer(name="jobs", help="Job queue management commands")


def _parse_payload(raw: str | None):
    if raw is None:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        print_error(f"Payload is not valid JSON: {e}")
        raise typer.Exit(1) from None


@app.command("enqueue")
def enqueue_job(
    name: str = typer.Argument(..., help="Job name (selects the handler)"),
    payload: str | None = typer.Option(None, "--payload", "-p", help="JSON payload"),
    delay: float = typer.Option(0, "--delay", "-d", help="Seconds before the job becomes eligible"),
):
    """➕ Place a new job on the queue"""
    data = _parse_payload(payload)

    try:
        job = run_with_store(lambda store: Job.create(store, name, data, unlock_at=delay))
    except JobQueueError as e:
        print_error(f"Failed to enqueue job: {e}")
        raise typer.Exit(1) from None

    print_success(f"Enqueued job {job.id}")
    display_job(JobView.model_validate(job))


@app.command("show")
def show_job(
    job_id: UUID = typer.Argument(..., help="Job ID to show"),
):
    """🔍 Show a job"""
    job = run_with_store(lambda store: Job.get_by_id(store, job_id))
    if job is None:
        print_error(f"Job {job_id} not found")
        raise typer.Exit(1)

    display_job(JobView.model_validate(job))


@app.command("reschedule")
def reschedule_job(
    job_id: UUID = typer.Argument(..., help="Job ID to reschedule"),
    delay: float = typer.Option(0, "--delay", "-d", help="Seconds from now; 0 makes it ready"),
):
    """⏰ Move a job's unlock time"""

    async def reschedule(store):
        job = await Job.get_by_id(store, job_id)
        if job is not None:
            await job.set_unlock_at(delay)
        return job

    try:
        job = run_with_store(reschedule)
    except JobQueueError as e:
        print_error(f"Failed to reschedule job: {e}")
        raise typer.Exit(1) from None

    if job is None:
        print_error(f"Job {job_id} not found")
        raise typer.Exit(1)

    print_success(f"Job {job_id} unlocks at {job.unlock_at.isoformat()}")


@app.command("delete")
def delete_job(
    job_id: UUID = typer.Argument(..., help="Job ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """🗑️ Delete a job (e.g. one that keeps failing)"""

    job = run_with_store(lambda store: Job.get_by_id(store, job_id))
    if job is None:
        print_error(f"Job {job_id} not found")
        raise typer.Exit(1)

    display_job(JobView.model_validate(job))
    if not yes and not Confirm.ask("Delete this job?"):
        print_info("Nothing deleted")
        raise typer.Exit()

    run_with_store(lambda store: store.delete_job(job_id))
    print_success(f"Deleted job {job_id}")


@app.command("stats")
def queue_stats():
    """📊 Show queue counters"""
    stats = run_with_store(lambda store: store.stats())
    console.print(create_stats_table(stats))
