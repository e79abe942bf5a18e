"""Public observability primitives: structured logging setup."""

from fixture_forge.observability.logging import configure_logging, get_logger, reset_logging

__all__ = [
    "configure_logging",
    "get_logger",
    "reset_logging",
]
