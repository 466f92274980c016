"""Job Queue CLI - Main Entry Point"""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel

from jobqueue import __version__
from jobqueue.config.settings import settings

from .commands import jobs
from .commands.worker import worker
from .utils.formatting import print_error, print_info
from .utils.store import open_store

console = Console()

# Create main Typer app
app = typer.Typer(
    name="jobqueue",
    help="⚙️ Job Queue - deferred job processing CLI",
    rich_markup_mode="rich",
)

# Add command subapps
app.add_typer(jobs.app, name="jobs")
app.command("worker")(worker)


@app.command()
def status():
    """📊 Check store connectivity"""
    print_info(f"Checking {settings.job_store.value} job store")

    async def check():
        async with open_store() as store:
            return await store.now(), await store.stats()

    try:
        now, stats = asyncio.run(check())
    except Exception as e:
        print_error(f"Failed to connect: {e}")
        console.print(Panel(
            "🚫 [red]Connection Failed[/red]\n\n"
            "Check DATABASE_URL and make sure the database is running.",
            title="Connection Error",
            border_style="red"
        ))
        raise typer.Exit(1) from None

    console.print(Panel(
        f"🚀 [green]Connected Successfully![/green]\n\n"
        f"• Store clock: [cyan]{now.isoformat()}[/cyan]\n"
        f"• Jobs: [yellow]{stats.total}[/yellow] ([green]{stats.ready}[/green] ready)\n"
        f"• Environment: [yellow]{settings.environment}[/yellow]",
        title="System Status",
        border_style="green"
    ))


def _version_callback(value: bool):
    if value:
        console.print(f"Job Queue CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """
    ⚙️ Job Queue CLI

    Enqueue, inspect, reschedule and delete deferred jobs, or run a worker.
    """


if __name__ == "__main__":
    app()
