"""Generation CLI commands.

Start, batch, retry and cancel generation jobs, and render agent files from a
local communication schema without touching the database or network.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docgen.database.models.job import GenerationJob, GenerationStep, JobStatus
from docgen.errors import DocgenError, ParseError, SchemaValidationError
from docgen.orchestrator.rendering import generate_agent_files
from docgen.orchestrator.steps import RetryScope
from docgen.orchestrator.worker import GenerationWorker

app = typer.Typer(help="Generation commands")
console = Console()

_STATUS_STYLES = {
    JobStatus.pending: "yellow",
    JobStatus.processing: "blue",
    JobStatus.completed: "green",
    JobStatus.failed: "red",
    JobStatus.cancelled: "magenta",
}


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[red]Invalid {label}:[/red] {value}")
        raise typer.Exit(code=1)


def _print_job(job: GenerationJob, title: str) -> None:
    style = _STATUS_STYLES.get(job.status, "white")
    body = (
        f"[bold]Job:[/bold] {job.id}\n"
        f"[bold]Project:[/bold] {job.project_id}\n"
        f"[bold]Status:[/bold] [{style}]{job.status.value}[/{style}]\n"
        f"[bold]Step:[/bold] {job.step.label}"
    )
    if job.error:
        body += f"\n[bold]Reason:[/bold] {job.error}"
    console.print(Panel(body, title=title, border_style=style))


@app.command()
def start(
    project_id: Annotated[str, typer.Argument(help="Project UUID")],
    prompt: Annotated[
        Optional[str],
        typer.Argument(help="Description of the project to document"),
    ] = None,
    prompt_file: Annotated[
        Optional[Path],
        typer.Option(
            "--prompt-file",
            "-p",
            help="Read the prompt from a file",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
) -> None:
    """Run the full generation pipeline for a project."""
    from docgen.main import get_app_context

    ctx = get_app_context()
    pid = _parse_uuid(project_id, "project id")

    if prompt_file is not None:
        prompt = prompt_file.read_text(encoding="utf-8")
    if not prompt or not prompt.strip():
        console.print("[red]A prompt is required (argument or --prompt-file)[/red]")
        raise typer.Exit(code=1)

    async def _start() -> GenerationJob:
        async with ctx.orchestrator() as orchestrator:
            return await orchestrator.start_generation(pid, prompt)

    try:
        job = asyncio.run(_start())
    except DocgenError as e:
        console.print(f"[red]Error starting generation:[/red] {e}")
        raise typer.Exit(code=1)

    _print_job(job, "Generation Finished")
    if job.status != JobStatus.completed:
        raise typer.Exit(code=1)


@app.command()
def retry(
    job_id: Annotated[str, typer.Argument(help="Generation job UUID")],
    step: Annotated[
        str,
        typer.Argument(help="Step to resume at (e.g. architecture or Architecture)"),
    ],
    scope: Annotated[
        Optional[str],
        typer.Option("--scope", "-s", help="single or downstream (default from config)"),
    ] = None,
) -> None:
    """Retry a finished job from a given step."""
    from docgen.main import get_app_context

    ctx = get_app_context()
    jid = _parse_uuid(job_id, "job id")

    try:
        target_step = GenerationStep.from_label(step)
        retry_scope = RetryScope(scope.lower()) if scope else None
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    async def _retry() -> GenerationJob:
        async with ctx.orchestrator() as orchestrator:
            return await orchestrator.retry_step(jid, target_step, retry_scope)

    try:
        job = asyncio.run(_retry())
    except DocgenError as e:
        console.print(f"[red]Error retrying job:[/red] {e}")
        raise typer.Exit(code=1)

    _print_job(job, "Retry Finished")
    if job.status != JobStatus.completed:
        raise typer.Exit(code=1)


@app.command()
def cancel(
    job_id: Annotated[str, typer.Argument(help="Generation job UUID")],
    reason: Annotated[
        str,
        typer.Option("--reason", "-r", help="Cancellation reason"),
    ] = "Generation cancelled by user",
) -> None:
    """Cancel a pending or processing job."""
    from docgen.main import get_app_context

    ctx = get_app_context()
    jid = _parse_uuid(job_id, "job id")

    async def _cancel() -> GenerationJob:
        async with ctx.orchestrator() as orchestrator:
            return await orchestrator.cancel(jid, reason)

    try:
        job = asyncio.run(_cancel())
    except DocgenError as e:
        console.print(f"[red]Error cancelling job:[/red] {e}")
        raise typer.Exit(code=1)

    _print_job(job, "Job Cancelled")


@app.command()
def render(
    schema_file: Annotated[
        Path,
        typer.Argument(
            help="Communication schema file (JSON, optionally wrapped in prose)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory to write agent files into"),
    ] = Path("agent-files"),
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="List the files without writing them"),
    ] = False,
) -> None:
    """Render README.md / AGENT.md files from a local schema."""
    try:
        files = generate_agent_files(schema_file.read_text(encoding="utf-8"))
    except (ParseError, SchemaValidationError) as e:
        console.print(f"[red]Invalid communication schema:[/red] {e}")
        raise typer.Exit(code=1)

    root = output.resolve()
    unsafe = [f.path for f in files if not (root / f.path).resolve().is_relative_to(root)]
    if unsafe:
        console.print(f"[red]Refusing to write outside {output}:[/red] {', '.join(unsafe)}")
        raise typer.Exit(code=1)

    table = Table(title=f"Agent Files ({len(files)})")
    table.add_column("Path", style="cyan")
    table.add_column("Bytes", justify="right")

    for agent_file in files:
        table.add_row(agent_file.path, str(len(agent_file.content.encode("utf-8"))))
        if not dry_run:
            target = output / agent_file.path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(agent_file.content, encoding="utf-8")

    console.print(table)
    if not dry_run:
        console.print(f"[green]Wrote {len(files)} files to {output}[/green]")


@app.command()
def batch(
    project_ids: Annotated[list[str], typer.Argument(help="Project UUIDs")],
    prompt: Annotated[
        str,
        typer.Option("--prompt", "-p", help="Prompt used for every project"),
    ],
) -> None:
    """Generate several projects through the background worker pool.

    Projects that cannot be claimed (unknown, or already generating) are
    skipped; the others run with ``pipeline.worker_concurrency`` workers.
    """
    from docgen.main import get_app_context

    ctx = get_app_context()
    pids = [_parse_uuid(value, "project id") for value in project_ids]
    if not prompt.strip():
        console.print("[red]A prompt is required[/red]")
        raise typer.Exit(code=1)

    async def _batch() -> list[GenerationJob]:
        async with ctx.orchestrator() as orchestrator:
            worker = GenerationWorker(orchestrator, ctx.config.pipeline.worker_concurrency)
            submitted: list[GenerationJob] = []
            for pid in pids:
                try:
                    submitted.append(await worker.submit(pid, prompt))
                except DocgenError as e:
                    console.print(f"[yellow]Skipping {pid}:[/yellow] {e}")

            await worker.start()
            try:
                await worker.join()
            finally:
                await worker.stop()
            return [await orchestrator.store.get_job(job.id) for job in submitted]

    try:
        jobs = asyncio.run(_batch())
    except DocgenError as e:
        console.print(f"[red]Error running batch:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"Generation Jobs ({len(jobs)})")
    table.add_column("Job", style="cyan", no_wrap=True)
    table.add_column("Project", no_wrap=True)
    table.add_column("Status")
    table.add_column("Step")
    for job in jobs:
        style = _STATUS_STYLES.get(job.status, "white")
        table.add_row(
            str(job.id),
            str(job.project_id),
            f"[{style}]{job.status.value}[/{style}]",
            job.step.label,
        )
    console.print(table)

    if len(jobs) != len(pids) or any(job.status != JobStatus.completed for job in jobs):
        raise typer.Exit(code=1)
