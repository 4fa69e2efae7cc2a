"""Structured logging for report runs.

Every event goes through structlog into stdlib logging, so each configured
output (stderr, stdout or a file) gets its own level and renderer. Events
emitted while a run is active carry that run's id.

Typical use from the command line:

    configure_logging(config=config.logging)
    with run_scope():
        ...  # every event logged here has run_id set
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from tarp.config.models import LoggingConfig, LogOutputConfig

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_run_id() -> str | None:
    return _run_id.get()


def set_run_id(run_id: str | None = None) -> str:
    """Set the current run id, generating a short random one if not given."""
    rid = run_id or uuid4().hex[:12]
    _run_id.set(rid)
    return rid


def clear_run_id() -> None:
    _run_id.set(None)


@contextmanager
def run_scope(run_id: str | None = None) -> Iterator[str]:
    """Tag every event logged inside the block with one run id."""
    token = _run_id.set(run_id or uuid4().hex[:12])
    try:
        yield _run_id.get()  # type: ignore[misc]
    finally:
        _run_id.reset(token)


def _add_run_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if rid := _run_id.get():
        event_dict["run_id"] = rid
    return event_dict


def _level(name: str | None, default: int) -> int:
    if name is None:
        return default
    return _LEVELS.get(name.upper(), default)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_run_id,  # type: ignore[list-item]
    ]


def _handler_for(output: LogOutputConfig) -> logging.Handler:
    if output.destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if output.destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(output.destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _renderer_for(output: LogOutputConfig, handler: logging.Handler) -> Any:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    # Colors only when a terminal is on the other end.
    stream = getattr(handler, "stream", None)
    colors = output.destination in ("stderr", "stdout") and bool(stream and stream.isatty())
    return structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "WARNING",
) -> None:
    """Route structlog through stdlib logging, one handler per output.

    Args:
        config: Logging configuration; when given, ``json_format`` and
            ``level`` are ignored.
        json_format: Render the single stderr output as JSON.
        level: Level of the single stderr output.
    """
    from tarp.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level(config.level, logging.WARNING)
    output_levels = [_level(output.level, root_level) for output in config.outputs]
    # Outputs may ask for more detail than the top-level level.
    floor = min(output_levels, default=root_level)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(floor),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must take effect for loggers created at import time.
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(floor)

    for output, output_level in zip(config.outputs, output_levels, strict=True):
        handler = _handler_for(output)
        handler.setLevel(output_level)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=_renderer_for(output, handler),
                foreign_pre_chain=shared,
            )
        )
        root.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
