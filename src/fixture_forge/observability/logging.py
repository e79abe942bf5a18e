"""Structured logging: structlog event loggers routed through the standard library.

Module loggers always sit on a stdlib ``logging.Logger`` so an application that
never calls ``configure_logging`` sees only what its own logging setup lets
through. ``configure_logging`` installs one handler on the ``fixture_forge``
logger with a JSON-lines or console renderer; calling it again with the same
arguments is a no-op and with different arguments replaces the handler.
"""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import IO, Any, Final

import structlog

from fixture_forge.constants import LOG_FORMATS

_DEFAULT_LOGGER_NAME: Final[str] = "fixture_forge"
_HANDLER_NAME: Final[str] = "fixture_forge.structured"

_ACTIVE_LOCK = threading.Lock()
_ACTIVE: _LoggingState | None = None


@dataclass(frozen=True, slots=True)
class _LoggingState:
    logger_name: str
    level: int
    log_format: str
    stream_id: int


def get_logger(name: str) -> Any:
    """Return a structlog bound logger backed by ``logging.getLogger(name)``."""

    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_logging(
    *,
    level: int | str = "WARNING",
    log_format: str = "text",
    logger_name: str = _DEFAULT_LOGGER_NAME,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Install the structured handler and return the configured stdlib logger."""

    global _ACTIVE

    parsed_level = _parse_log_level(level)
    selected_format = _validate_log_format(log_format)
    target_stream = stream if stream is not None else sys.stderr
    state = _LoggingState(
        logger_name=logger_name,
        level=parsed_level,
        log_format=selected_format,
        stream_id=id(target_stream),
    )

    with _ACTIVE_LOCK:
        logger = logging.getLogger(logger_name)
        if _ACTIVE == state:
            return logger

        shared_processors: list[Any] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ]
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *shared_processors,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )

        handler = logging.StreamHandler(target_stream)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _renderer(selected_format),
                ],
            )
        )

        _remove_structured_handlers(logger)
        logger.addHandler(handler)
        logger.setLevel(parsed_level)
        logger.propagate = False
        _ACTIVE = state
        return logger


def reset_logging(logger_name: str = _DEFAULT_LOGGER_NAME) -> None:
    """Remove the structured handler and restore structlog defaults."""

    global _ACTIVE

    with _ACTIVE_LOCK:
        logger = logging.getLogger(logger_name)
        _remove_structured_handlers(logger)
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
        structlog.reset_defaults()
        _ACTIVE = None


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def _remove_structured_handlers(logger: logging.Logger) -> None:
    for existing in list(logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logger.removeHandler(existing)
            existing.close()


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, bool):
        raise ValueError("level must be int or str, got bool")
    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


def _validate_log_format(value: str) -> str:
    if value not in LOG_FORMATS:
        expected = ", ".join(LOG_FORMATS)
        raise ValueError(f"unsupported log format {value!r}; expected one of: {expected}")
    return value


__all__ = [
    "configure_logging",
    "get_logger",
    "reset_logging",
]
