"""Stable constants shared across the construction engine."""

from __future__ import annotations

from typing import Final

# Settings file and environment prefix.
DEFAULT_SETTINGS_FILE: Final[str] = "fixture_forge.toml"
ENV_PREFIX: Final[str] = "FIXTURE_FORGE_"

# Sequence counters hand out this value first unless configured otherwise.
DEFAULT_SEQUENCE_START: Final[int] = 1

# Associations build other templates; chains deeper than this are rejected.
MAX_ASSOCIATION_DEPTH: Final[int] = 3

# Description file formats and the marker directive syntax used inside them.
DESCRIPTION_SUFFIXES: Final[tuple[str, ...]] = (".toml", ".yaml", ".yml", ".json")
DIRECTIVE_PREFIX: Final[str] = "$"
SEQUENCE_DIRECTIVE: Final[str] = "$sequence"
SEQUENCE_FORMAT_DIRECTIVE: Final[str] = "$sequence_format"

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

__all__ = [
    "DEFAULT_SEQUENCE_START",
    "DEFAULT_SETTINGS_FILE",
    "DESCRIPTION_SUFFIXES",
    "DIRECTIVE_PREFIX",
    "ENV_PREFIX",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "MAX_ASSOCIATION_DEPTH",
    "SEQUENCE_DIRECTIVE",
    "SEQUENCE_FORMAT_DIRECTIVE",
]
