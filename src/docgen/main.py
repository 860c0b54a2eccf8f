"""Main CLI entry point for DocGen.

This module provides the main Typer application with sub-commands for
project management and documentation generation.

Usage:
    docgen project create "Todo App"
    docgen generate start <project-id> "A todo app with a REST API"
    docgen generate retry <job-id> architecture --scope downstream
    docgen generate render schema.json --output ./docs
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from docgen.cli import generation as generation_cli
from docgen.cli import project as project_cli
from docgen.config import DocgenConfig, load_config
from docgen.database.connection import get_engine, get_session_factory
from docgen.database.store import DocumentStore
from docgen.logging import setup_logging, start_run
from docgen.orchestrator import Orchestrator
from docgen.providers import ClaudeProvider, OpenAIProvider
from docgen.scaffold import GitHubClient, RepositoryScaffolder

app = typer.Typer(
    name="docgen",
    help="DocGen: LLM-driven project documentation and repository scaffolding",
    no_args_is_help=True,
)

# Add sub-apps
app.add_typer(project_cli.app, name="project", help="Manage projects")
app.add_typer(generation_cli.app, name="generate", help="Run and control generation jobs")

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded DocGen configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
        store: Document store over the session factory
    """

    def __init__(self, config: DocgenConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)
        self.store = DocumentStore(self.session_factory)

    @asynccontextmanager
    async def orchestrator(self) -> AsyncIterator[Orchestrator]:
        """Build an Orchestrator with live clients and close them afterwards."""
        try:
            async with (
                OpenAIProvider(self.config.openai) as openai,
                ClaudeProvider(self.config.claude) as claude,
                GitHubClient(self.config.github) as github,
            ):
                yield Orchestrator(
                    self.store,
                    openai,
                    claude,
                    scaffolder=RepositoryScaffolder(github, self.config.scaffold),
                    config=self.config.pipeline,
                )
        finally:
            await self.engine.dispose()

    async def close(self) -> None:
        """Release pooled database connections."""
        await self.engine.dispose()


# Global context holder
_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: DocgenConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context.

    Args:
        config_path: Optional path to TOML configuration file
        verbose: Enable debug-level logging
    """
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    logging_config = config.logging.model_copy(update={"format": "console"})
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    setup_logging(logging_config)
    start_run()

    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
