"""Rich Formatting Utilities for CLI Output"""

import json
from datetime import UTC, datetime

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from jobqueue.jobs.schemas import JobView, QueueStats

console = Console()


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def format_unlock_at(unlock_at: datetime, now: datetime | None = None) -> str:
    """Absolute unlock time plus a relative hint ("in 2m 0s" / "ready")"""
    now = now or datetime.now(UTC)
    seconds = int((unlock_at - now).total_seconds())
    stamp = unlock_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    if seconds <= 0:
        return f"{stamp} (ready)"
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{stamp} (in {hours}h {minutes}m)"
    return f"{stamp} (in {minutes}m {secs}s)"


def display_job(job: JobView, now: datetime | None = None):
    """Show a job as a panel"""
    payload = json.dumps(job.payload, indent=2, default=str)
    console.print(Panel(
        f"[bold]ID:[/bold] [cyan]{job.id}[/cyan]\n"
        f"[bold]Name:[/bold] [magenta]{job.name}[/magenta]\n"
        f"[bold]Attempts:[/bold] [yellow]{job.attempts}[/yellow]\n"
        f"[bold]Created:[/bold] {job.created_at.isoformat()}\n"
        f"[bold]Unlocks:[/bold] {format_unlock_at(job.unlock_at, now)}\n\n"
        f"[bold]Payload:[/bold]\n{payload}",
        title="Job",
        border_style="cyan",
    ))


def create_stats_table(stats: QueueStats) -> Table:
    """Create a formatted table for queue counters"""
    table = Table(title="Queue", box=box.ROUNDED)

    table.add_column("Metric", justify="left", style="cyan")
    table.add_column("Jobs", justify="right", style="yellow")

    table.add_row("Total", str(stats.total))
    table.add_row("Ready", str(stats.ready))
    table.add_row("Leased or deferred", str(stats.locked))

    return table
