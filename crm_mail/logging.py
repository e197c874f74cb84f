"""Structured logging for the mail processor, built on structlog.

structlog events are rendered through the stdlib root logger, so the
processor, SQLAlchemy and anything else in the process share one stream
and one format.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]

# Above CRITICAL: nothing passes.
_SILENT = logging.CRITICAL + 10


def setup_logging(
    *,
    json: bool = True,
    level: str = "INFO",
    quiet: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging to a single handler.

    Parameters
    ----------
    json:
        JSON lines (the default, for log shippers) or, if *False*, the
        human-friendly console renderer.
    level:
        Root log level name, case-insensitive (``"debug"``, ``"INFO"``).
    quiet:
        Mute every logger in the process, e.g. for cron-driven runs.
    stream:
        Where rendered lines go; standard output by default.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level {level!r}")

    if json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_SILENT if quiet else numeric_level)


def _drop_event(logger, method_name, event_dict):
    raise structlog.DropEvent


def quiet_logger():
    """A logger that drops every event, for a processor running quietly."""
    return structlog.wrap_logger(structlog.PrintLogger(), processors=[_drop_event])
