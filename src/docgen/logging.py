"""Structured logging configuration for DocGen.

All modules log through structlog; stdlib logging only supplies the
handler (stdout or a size-rotated file). Every event carries:

- ``run_id`` of the CLI invocation that emitted it, once one is started
- ``job_id`` and ``project_id`` while a generation job is executing

Example usage:
    >>> from docgen.config import LoggingConfig
    >>> from docgen.logging import setup_logging, get_logger, bind_job_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_job_context(job_id="J-123", project_id="P-456")
    >>> logger.info("stage_started", step="dev_plan")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
import uuid
from typing import Any

import structlog

from docgen.config import LoggingConfig

# Client libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "asyncio")

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)


def add_run_id(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: attach the current run id, if one is set."""
    run_id = _run_id.get()
    if run_id is not None:
        event_dict.setdefault("run_id", run_id)
    return event_dict


def start_run(run_id: str | None = None) -> str:
    """Start a logging run for the current context and return its id.

    Args:
        run_id: Explicit id to use; a short random id when omitted
    """
    value = run_id or uuid.uuid4().hex[:12]
    _run_id.set(value)
    return value


def get_run_id() -> str | None:
    return _run_id.get()


def end_run() -> None:
    _run_id.set(None)


def bind_job_context(job_id: str, project_id: str) -> None:
    """Bind job and project identity to all subsequent logs.

    The binding lives in structlog's contextvars and is therefore scoped to
    the current asyncio task; concurrent jobs keep separate bindings.
    """
    structlog.contextvars.bind_contextvars(job_id=job_id, project_id=project_id)


def clear_job_context() -> None:
    """Remove the bindings made by bind_job_context."""
    structlog.contextvars.unbind_contextvars("job_id", "project_id")


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def setup_logging(config: LoggingConfig) -> None:
    """Configure stdlib handlers and the structlog processor chain.

    Replaces any handlers already installed on the root logger. Below DEBUG
    the loggers in NOISY_LOGGERS are raised to WARNING.

    Args:
        config: Logging section of DocgenConfig
    """
    log_level = getattr(logging, config.level)

    handler = _build_handler(config)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    library_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    renderer: Any
    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=config.file is None and sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_run_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
