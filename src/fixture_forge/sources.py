"""
fixture-forge: description file loading.

File: src/fixture_forge/sources.py

Purpose
- Read base descriptions from TOML, YAML or JSON files for ``define_from``.

Functional requirements
- The file root must be a mapping; an empty file is an empty mapping.
- ``key`` selects one named description out of a file holding several.
- Marker directives (``{"$sequence": "int"}``, ``{"$sequence_format": "..."}``)
  become resolver markers; any other ``$`` directive is rejected.
- Relative paths resolve against the configured fixtures directory when set.

Non-functional requirements
- Every failure is a ``DescriptionLoadError`` chained to its cause.
"""

from __future__ import annotations

import json
import threading
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

import yaml

from fixture_forge.constants import (
    DESCRIPTION_SUFFIXES,
    DIRECTIVE_PREFIX,
    SEQUENCE_DIRECTIVE,
    SEQUENCE_FORMAT_DIRECTIVE,
)
from fixture_forge.errors import DescriptionLoadError, FieldPath, render_path
from fixture_forge.markers import sequence, sequence_format

_SEQUENCE_TYPES: Final[dict[str, type]] = {"int": int, "float": float, "str": str}

_FIXTURES_DIR_LOCK = threading.Lock()
_FIXTURES_DIR: Path | None = None


def set_fixtures_dir(path: str | Path | None) -> None:
    """Set the directory relative description paths resolve against (``None`` clears it)."""

    global _FIXTURES_DIR
    resolved = None if path is None or str(path) == "" else Path(path).expanduser().resolve()
    with _FIXTURES_DIR_LOCK:
        _FIXTURES_DIR = resolved


def fixtures_dir() -> Path | None:
    with _FIXTURES_DIR_LOCK:
        return _FIXTURES_DIR


def resolve_source_path(source: str | Path) -> Path:
    candidate = Path(source).expanduser()
    base = fixtures_dir()
    if not candidate.is_absolute() and base is not None:
        candidate = base / candidate
    return candidate.resolve()


def load_descriptions(source: str | Path) -> dict[str, Any]:
    """Load every description in ``source`` with directives converted to markers."""

    path = resolve_source_path(source)
    suffix = path.suffix.lower()
    if suffix not in DESCRIPTION_SUFFIXES:
        supported = ", ".join(DESCRIPTION_SUFFIXES)
        raise DescriptionLoadError(
            f"unsupported description file {path.name!r}; expected one of {supported}"
        )

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptionLoadError(f"unable to read description file {path}: {exc}") from exc

    parsed = _parse_text(raw, suffix=suffix, path=path)
    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise DescriptionLoadError(f"description file root must be a mapping: {path}")
    return parse_description(parsed, source=path)


def load_description(source: str | Path, *, key: str | None = None) -> dict[str, Any]:
    """Load one description; ``key`` picks a named entry (dotted keys descend)."""

    descriptions = load_descriptions(source)
    if key is None:
        return descriptions

    cursor: Any = descriptions
    for part in key.split("."):
        if not isinstance(cursor, Mapping) or part not in cursor:
            available = ", ".join(sorted(str(name) for name in descriptions)) or "none"
            raise DescriptionLoadError(
                f"no description named {key!r} in {source}; available: {available}"
            )
        cursor = cursor[part]
    if not isinstance(cursor, Mapping):
        raise DescriptionLoadError(f"description {key!r} in {source} must be a mapping")
    return dict(cursor)


def parse_description(
    payload: Mapping[Any, Any],
    *,
    source: str | Path = "<inline>",
) -> dict[str, Any]:
    """Convert directive mappings in ``payload`` into resolver markers."""

    converted = _convert(payload, (), source)
    if not isinstance(converted, dict):
        raise DescriptionLoadError(f"description root must be a mapping, not a directive: {source}")
    return converted


def _parse_text(raw: str, *, suffix: str, path: Path) -> object:
    if not raw.strip():
        return None
    try:
        if suffix == ".toml":
            return tomllib.loads(raw)
        if suffix == ".json":
            return json.loads(raw)
        return yaml.safe_load(raw)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DescriptionLoadError(f"invalid {suffix[1:].upper()} in {path}: {exc}") from exc


def _convert(value: Any, path: FieldPath, source: str | Path) -> Any:
    if isinstance(value, Mapping):
        directives = [
            key for key in value if isinstance(key, str) and key.startswith(DIRECTIVE_PREFIX)
        ]
        if directives:
            return _directive(value, directives, path, source)
        return {key: _convert(item, (*path, str(key)), source) for key, item in value.items()}
    if isinstance(value, list):
        return [_convert(item, (*path, index), source) for index, item in enumerate(value)]
    return value


def _directive(
    value: Mapping[Any, Any],
    directives: list[str],
    path: FieldPath,
    source: str | Path,
) -> Any:
    location = f"{source}: {render_path(path) or '<root>'}"
    if len(value) != 1:
        raise DescriptionLoadError(
            f"{location}: a {directives[0]!r} directive must be the only key of its mapping"
        )
    name = directives[0]
    argument = value[name]

    if name == SEQUENCE_DIRECTIVE:
        value_type = _SEQUENCE_TYPES.get(argument) if isinstance(argument, str) else None
        if value_type is None:
            allowed = ", ".join(sorted(_SEQUENCE_TYPES))
            raise DescriptionLoadError(
                f"{location}: {name} expects one of {allowed}, got {argument!r}"
            )
        return sequence(value_type)

    if name == SEQUENCE_FORMAT_DIRECTIVE:
        if not isinstance(argument, str):
            raise DescriptionLoadError(
                f"{location}: {name} expects a format string, got {argument!r}"
            )
        try:
            return sequence_format(argument)
        except ValueError as exc:
            raise DescriptionLoadError(f"{location}: {exc}") from exc

    known = ", ".join((SEQUENCE_DIRECTIVE, SEQUENCE_FORMAT_DIRECTIVE))
    raise DescriptionLoadError(f"{location}: unknown directive {name!r}; expected one of {known}")


__all__ = [
    "fixtures_dir",
    "load_description",
    "load_descriptions",
    "parse_description",
    "resolve_source_path",
    "set_fixtures_dir",
]
