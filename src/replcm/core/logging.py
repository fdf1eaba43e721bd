# src/replcm/core/logging.py
"""Structured logging configuration for replcm.

structlog and stdlib logging share one handler: stdlib records are routed
through structlog's processor chain by ProcessorFormatter, so library code
calling logging.getLogger(__name__) renders exactly like replcm's own
structlog loggers (JSON or console).

Logs go to stderr. stdout is reserved for command output (cm paths, located
files) that operators pipe into other tools.
"""

import logging
import sys
from pathlib import PurePath
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from replcm.core.config import LoggingSettings

# Chatty at DEBUG; capped at WARNING
_NOISY_LOGGERS: tuple[str, ...] = (
    "dynaconf",
    "urllib3",
    "urllib3.connectionpool",
)


def _render_paths(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Render pathlib values as plain strings (JSONRenderer cannot encode them)."""
    for key, value in event_dict.items():
        if isinstance(value, PurePath):
            event_dict[key] = str(value)
    return event_dict


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Strip the _record/_from_structlog keys ProcessorFormatter always adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and stdlib logging for replcm.

    Safe to call repeatedly; each call replaces the root handler.

    Args:
        json_output: If True, one JSON object per line. If False, console format.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        stream: Destination (default: sys.stderr at call time).
    """
    log_level = getattr(logging, level.upper())

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        _render_paths,
    ]

    renderer: list[Any]
    if json_output:
        renderer = [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            _drop_formatter_bookkeeping,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure between cases
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=renderer, foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    capped = max(log_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(capped)


def configure_from_settings(
    settings: LoggingSettings,
    *,
    verbose: bool = False,
    json_output: bool = False,
) -> None:
    """Apply the logging section of the settings.

    Command-line flags win: verbose forces DEBUG, json_output forces JSON.
    """
    configure_logging(
        json_output=json_output or settings.json_output,
        level="DEBUG" if verbose else settings.level,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
