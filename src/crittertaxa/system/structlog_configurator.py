"""Structlog-based logging configuration for crittertaxa.

Library modules log through the standard ``logging`` module; this configures
structlog as the front end for the command line and routes the standard
library records to stderr, so stdout stays reserved for command output.
"""

import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog

from crittertaxa.config.models import ToolboxConfig

VERBOSITY_LEVELS = {1: logging.INFO, 2: logging.DEBUG}


def _add_static_context(extra_fields: dict[str, str]) -> Callable:
    """Processor to add static context fields to all log entries."""

    def processor(
        logger: structlog.BoundLogger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.update(extra_fields)
        return event_dict

    return processor


def resolve_log_level(config: ToolboxConfig, verbosity: int = 0) -> int:
    """Pick the effective level: ``-v`` flags win over the configured level."""
    if verbosity > 0:
        return VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)
    return getattr(logging, config.logging.level.upper(), logging.WARNING)


def _configure_processors(config: ToolboxConfig) -> list:
    """Configure structlog processors from the logging settings."""
    processors = [
        structlog.contextvars.merge_contextvars,
        _add_static_context(dict(config.logging.extra_fields)),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]

    if config.logging.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if config.logging.json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    return processors


def _configure_handlers(log_level: int) -> None:
    """Send standard library log records to stderr."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(log_level)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(log_level)
    stderr_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root_logger.addHandler(stderr_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def configure_structlog(config: ToolboxConfig, verbosity: int = 0) -> None:
    """Configure structlog-based logging system.

    Args:
        config: The ToolboxConfig instance containing logging settings.
        verbosity: Number of ``-v`` flags given on the command line.
    """
    log_level = resolve_log_level(config, verbosity)

    structlog.configure(
        processors=_configure_processors(config),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    _configure_handlers(log_level)

    logger = structlog.get_logger(__name__)
    logger.debug(
        "Structured logging configured",
        log_level=logging.getLevelName(log_level),
        json_output=config.logging.json_logs,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)
