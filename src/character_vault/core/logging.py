"""Structured logging for Character Vault.

structlog is configured once per process from the application settings:
a coloured console renderer while debugging, JSON lines otherwise. The
engine logs formula fallbacks and strategy choices at DEBUG; the roster
logs loads at INFO and skipped snapshots at WARNING.

Every line emitted while a sheet is rendered or a roster reload is
committed carries the character (or reload generation) it belongs to,
bound through ``log_context``.

Example:
    >>> from character_vault.core.logging import get_logger, log_context
    >>> logger = get_logger(__name__)
    >>> with log_context(character="Mira"):
    ...     logger.debug("Armour class resolved", value=16)
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.types import EventDict, WrappedLogger


APP_NAME = "character_vault"
STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Stamp every entry with the application name."""
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def _processors(json_format: bool) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        return [*shared, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        *shared,
        structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback),
    ]


def configure_logging(
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Logging level name; ``Settings.log_level`` when omitted.
        json_format: Emit JSON lines. Defaults to JSON unless
            ``Settings.debug`` is on.
        log_file: Optional file that also receives standard library records.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    if level is None or json_format is None:
        from character_vault.core.config import get_settings

        settings = get_settings()
        level = level or settings.log_level
        json_format = (not settings.debug) if json_format is None else json_format

    level_no = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format=STDLIB_FORMAT, level=level_no, stream=sys.stdout, force=True)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level_no)
        file_handler.setFormatter(logging.Formatter(STDLIB_FORMAT))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind values to every log line emitted inside the block.

    Values bound by an enclosing block are restored on exit, so nested
    renders (a roster commit rendering summaries) keep their own tags.

    Args:
        **values: Key-value pairs added to each entry.
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


__all__ = [
    "APP_NAME",
    "add_app_context",
    "configure_logging",
    "get_logger",
    "log_context",
]
