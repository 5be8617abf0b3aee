"""
Structured logging configuration using structlog.

Every event carries the service name and package version so logs from the
CLI, batch index builds and library callers can be told apart. Events are
rendered to stderr; stdout is reserved for command output.
"""

import logging
import sys
from typing import Any, List, MutableMapping, Optional

import structlog

from .config import Settings, settings as default_settings
from .version import __version__


SERVICE_NAME = "keyword-matcher"


def add_service_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor stamping each event with service and version."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def resolve_log_level(settings: Settings, verbose: bool = False) -> int:
    """
    Numeric level for the filtering logger.

    Verbose forces DEBUG; unknown level names fall back to INFO.
    """
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def _processors(json_output: bool) -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_service_context,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
    ]


def setup_logging(settings: Optional[Settings] = None, verbose: bool = False) -> None:
    """
    Configure structlog for the process.

    Args:
        settings: Settings providing log_level and log_json (default: global settings)
        verbose: Log at DEBUG regardless of settings.log_level
    """
    settings = settings or default_settings

    structlog.configure(
        processors=_processors(settings.log_json),
        wrapper_class=structlog.make_filtering_bound_logger(
            resolve_log_level(settings, verbose)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
