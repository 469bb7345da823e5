"""
Meal Planner - CLI Entry Point.

Usage:
    mealplanner serve                      Start the API server
    mealplanner generate plan.json         Run a plan locally and show progress
    mealplanner watch JOB_ID --token T     Follow a job on a running server
    mealplanner health                     Check configuration
"""

import asyncio
import json
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

# Environment-only switches (e.g. MEALPLANNER_LOG_PROMPTS) are read outside Settings
load_dotenv()

app = typer.Typer(
    name="mealplanner",
    help="Meal Planner - household meal generation.",
    add_completion=False,
)
console = Console()


def _progress_bar() -> tuple[Progress, int]:
    progress = Progress(
        TextColumn("[bold green]{task.fields[state]}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TextColumn("[dim]{task.fields[step]}"),
    )
    task_id = progress.add_task("generate", total=100, state="validating", step="")
    return progress, task_id


async def _follow(poller, job_id: str, progress: Progress, task_id: int):
    """Run the poller while mirroring its snapshots onto a rich progress bar."""

    def on_update(snapshot):
        progress.update(
            task_id,
            completed=snapshot.progress,
            state=snapshot.state.value,
            step=snapshot.current_step or "",
        )

    poller.on_update = on_update
    with Live(progress, console=console, refresh_per_second=8):
        poller.start(job_id)
        return await poller.wait()


def _print_outcome(snapshot) -> None:
    if snapshot.state.value == "completed":
        console.print(f"[green]OK[/green] Generated {snapshot.total_meals} meals")
    else:
        console.print(f"[red]FAIL[/red] {snapshot.error}")


@app.command()
def generate(
    plan_file: Path = typer.Argument(..., help="JSON file with 'plan' and 'groups'"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log prompts to prompt_logs/"),
) -> None:
    """Generate meals for a plan with the in-memory backend."""
    from mealplanner.client import GenerationPoller
    from mealplanner.config import settings
    from mealplanner.errors import MealPlannerError
    from mealplanner.generation import GenerationExecutor, JobLauncher, JobStatusHandler, JobSubmissionHandler
    from mealplanner.generation.generator import get_generator
    from mealplanner.groups import InMemoryGroupSource, parse_groups
    from mealplanner.jobs import InMemoryJobStore
    from mealplanner.notifications import LoggingNotifier
    from mealplanner.observability import enable_prompt_logging, setup_logging

    setup_logging(settings.log_level)
    if log_prompts or settings.mealplanner_log_prompts:
        enable_prompt_logging(True)
        console.print("[dim]Prompt logging enabled. Check prompt_logs/ afterwards.[/dim]")

    data = json.loads(plan_file.read_text(encoding="utf-8"))
    user_id = settings.dev_user_id
    groups = InMemoryGroupSource(parse_groups(data.get("groups", []), user_id))
    store = InMemoryJobStore()
    launcher = JobLauncher(GenerationExecutor(store, get_generator(), LoggingNotifier()))
    submission = JobSubmissionHandler(store, groups, launcher)
    status = JobStatusHandler(store)

    async def fetch(job_id: str):
        jobs = await status.query_jobs(user_id, job_id=job_id)
        return jobs[0] if jobs else None

    async def run():
        result = await submission.submit(user_id, data.get("plan", {}))
        console.print(Panel.fit(f"Job [bold]{result.job_id}[/bold]\n{result.message}", title="Submitted"))
        for warning in result.warnings:
            console.print(f"[yellow]WARN[/yellow] {warning}")

        poller = GenerationPoller(
            fetch,
            interval=min(settings.poll_interval_seconds, 0.5),
            timeout=settings.poll_timeout_seconds,
        )
        progress, task_id = _progress_bar()
        snapshot = await _follow(poller, result.job_id, progress, task_id)
        await launcher.drain()
        meals = await status.list_job_meals(user_id, result.job_id)
        return snapshot, meals

    try:
        snapshot, meals = asyncio.run(run())
    except MealPlannerError as e:
        console.print(f"[red]FAIL[/red] {e.message}")
        if e.details:
            console.print(e.details)
        raise typer.Exit(1)

    _print_outcome(snapshot)
    if meals:
        table = Table(title="Generated meals")
        table.add_column("Group")
        table.add_column("Meal")
        table.add_column("Time", justify="right")
        table.add_column("Difficulty")
        for meal in meals:
            table.add_row(meal.group_name, meal.title, f"{meal.total_time} min", meal.difficulty)
        console.print(table)
    if snapshot.state.value != "completed":
        raise typer.Exit(1)


@app.command()
def watch(
    job_id: str = typer.Argument(..., help="Job to follow"),
    url: str = typer.Option("http://localhost:8000", "--url", "-u", help="Server base URL"),
    token: str = typer.Option(..., "--token", "-t", help="Bearer token"),
) -> None:
    """Follow a job on a running server until it finishes."""
    from mealplanner.client import GenerationPoller, HttpStatusFetcher
    from mealplanner.config import settings

    async def run():
        async with HttpStatusFetcher(url, token) as fetcher:
            poller = GenerationPoller(
                fetcher,
                interval=settings.poll_interval_seconds,
                timeout=settings.poll_timeout_seconds,
            )
            progress, task_id = _progress_bar()
            return await _follow(poller, job_id, progress, task_id)

    snapshot = asyncio.run(run())
    _print_outcome(snapshot)
    if snapshot.state.value != "completed":
        raise typer.Exit(1)


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from mealplanner.config import get_settings

    console.print("\n[bold]Meal Planner Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.mealplanner_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Job store: {settings.resolved_store_backend}")

        if settings.openai_api_key:
            console.print("[green]OK[/green] OpenAI API key configured")
        elif settings.use_mock_generator:
            console.print("[yellow]WARN[/yellow] No OpenAI API key - using mock generator")
        else:
            console.print("[red]FAIL[/red] OpenAI API key missing")

        if settings.resolved_store_backend == "supabase":
            if settings.supabase_url and settings.supabase_url.startswith("https://"):
                console.print("[green]OK[/green] Supabase URL configured")
            else:
                console.print("[red]FAIL[/red] Supabase URL missing or invalid")
            if settings.supabase_service_role_key:
                console.print("[green]OK[/green] Supabase service key configured")
            else:
                console.print("[red]FAIL[/red] Supabase service key missing")
    except Exception as e:
        console.print(f"[red]FAIL[/red] Configuration error: {e}")
        raise typer.Exit(1)


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    from mealplanner.config import settings
    from mealplanner.observability import setup_logging

    setup_logging(settings.log_level)

    # Hosting platforms set PORT
    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]Meal Planner API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "mealplanner.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
