"""Project management CLI commands.

This module provides CLI commands for creating, listing, and inspecting
projects together with their generated documents and jobs.
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docgen.database.models.project import ProjectStatus
from docgen.errors import DocgenError

app = typer.Typer(help="Project management commands")
console = Console()

# Owner recorded for projects created from the command line
LOCAL_USER_ID = UUID(int=0)


@app.command()
def create(
    name: Annotated[str, typer.Argument(help="Project name")],
    description: Annotated[
        Optional[str],
        typer.Option("--description", "-d", help="Project description"),
    ] = None,
    owner: Annotated[
        Optional[str],
        typer.Option("--owner", "-o", help="Owning user id (UUID)"),
    ] = None,
) -> None:
    """Create a new project."""
    from docgen.main import get_app_context

    ctx = get_app_context()

    try:
        user_id = UUID(owner) if owner else LOCAL_USER_ID
    except ValueError:
        console.print(f"[red]Invalid owner id:[/red] {owner}")
        raise typer.Exit(code=1)

    async def _create_project():
        try:
            return await ctx.store.create_project(user_id, name, description)
        finally:
            await ctx.close()

    try:
        project = asyncio.run(_create_project())
    except DocgenError as e:
        console.print(f"[red]Error creating project:[/red] {e}")
        raise typer.Exit(code=1)

    panel = Panel(
        f"[green]Project created successfully![/green]\n\n"
        f"[bold]ID:[/bold] {project.id}\n"
        f"[bold]Name:[/bold] {project.name}\n"
        f"[bold]Status:[/bold] {project.status.value}\n"
        f"[bold]Created:[/bold] {project.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
        title="Project Created",
        border_style="green",
    )
    console.print(panel)


@app.command("list")
def list_command(
    status: Annotated[
        Optional[str],
        typer.Option(
            "--status",
            "-s",
            help="Filter by status (pending, processing, completed, failed, cancelled)",
        ),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """List all projects."""
    from docgen.main import get_app_context

    ctx = get_app_context()

    status_filter = None
    if status is not None:
        try:
            status_filter = ProjectStatus(status.lower())
        except ValueError:
            console.print(f"[red]Invalid status:[/red] {status}")
            raise typer.Exit(code=1)

    async def _list_projects():
        try:
            return await ctx.store.list_projects(status_filter=status_filter)
        finally:
            await ctx.close()

    try:
        projects = asyncio.run(_list_projects())
    except DocgenError as e:
        console.print(f"[red]Error listing projects:[/red] {e}")
        raise typer.Exit(code=1)

    if format == "json":
        rows = [
            {
                "id": str(p.id),
                "name": p.name,
                "status": p.status.value,
                "progress": p.progress,
                "repository_url": p.repository_url,
                "created_at": p.created_at.isoformat(),
            }
            for p in projects
        ]
        console.print_json(json.dumps(rows))
        return

    if not projects:
        console.print("[yellow]No projects found[/yellow]")
        return

    table = Table(title=f"Projects ({len(projects)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Repository")

    for p in projects:
        table.add_row(
            str(p.id),
            p.name,
            p.status.value,
            f"{p.progress}%",
            p.repository_url or "-",
        )

    console.print(table)


@app.command()
def show(
    project_id: Annotated[str, typer.Argument(help="Project UUID")],
) -> None:
    """Show a project with its documents and generation jobs."""
    from docgen.main import get_app_context

    ctx = get_app_context()

    try:
        pid = UUID(project_id)
    except ValueError:
        console.print(f"[red]Invalid project id:[/red] {project_id}")
        raise typer.Exit(code=1)

    async def _load():
        try:
            project = await ctx.store.get_project(pid)
            if project is None:
                return None, [], []
            documents = await ctx.store.list_documents(pid)
            jobs = await ctx.store.list_jobs(project_id=pid)
            return project, documents, jobs
        finally:
            await ctx.close()

    try:
        project, documents, jobs = asyncio.run(_load())
    except DocgenError as e:
        console.print(f"[red]Error loading project:[/red] {e}")
        raise typer.Exit(code=1)

    if project is None:
        console.print(f"[red]Project {project_id} not found[/red]")
        raise typer.Exit(code=1)

    details = (
        f"[bold]ID:[/bold] {project.id}\n"
        f"[bold]Name:[/bold] {project.name}\n"
        f"[bold]Status:[/bold] {project.status.value}\n"
        f"[bold]Progress:[/bold] {project.progress}%"
    )
    if project.status_reason:
        details += f"\n[bold]Reason:[/bold] {project.status_reason}"
    if project.repository_url:
        details += f"\n[bold]Repository:[/bold] {project.repository_url}"
    console.print(Panel(details, title="Project", border_style="cyan"))

    if documents:
        doc_table = Table(title="Documents")
        doc_table.add_column("Kind", style="cyan")
        doc_table.add_column("Version", justify="right")
        doc_table.add_column("Length", justify="right")
        doc_table.add_column("Updated")
        for doc in documents:
            doc_table.add_row(
                doc.kind.value,
                str(doc.version),
                str(len(doc.content)),
                doc.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        console.print(doc_table)

    if jobs:
        job_table = Table(title="Generation Jobs")
        job_table.add_column("ID", style="cyan", no_wrap=True)
        job_table.add_column("Status")
        job_table.add_column("Step")
        job_table.add_column("Error")
        for job in jobs:
            job_table.add_row(str(job.id), job.status.value, job.step.label, job.error or "-")
        console.print(job_table)
