"""
fixture-forge: settings loader.

File: src/fixture_forge/config/loader.py

Purpose
- Load effective settings from defaults, a TOML file and environment variables,
  and apply them to the process-wide sequence registry, fixtures directory and
  logging.

Functional requirements
- Precedence: env (FIXTURE_FORGE_) > file > defaults.
- A missing settings file is an error only when its path was given explicitly.
- ``sources.fixtures_dir`` is normalized relative to the settings file.

Non-functional requirements
- Keep loading deterministic and reproducible.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

from fixture_forge.config.schema import (
    PATH_FIELDS,
    assert_valid_settings,
    default_settings,
    merge_settings,
)
from fixture_forge.constants import DEFAULT_SETTINGS_FILE, ENV_PREFIX
from fixture_forge.observability.logging import configure_logging
from fixture_forge.resolvers import reset_sequences
from fixture_forge.sources import set_fixtures_dir

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


@dataclass(frozen=True, slots=True)
class _Binding:
    path: tuple[str, ...]
    value_type: Literal["str", "int", "bool"]


class SettingsLoadError(ValueError):
    """Raised when settings cannot be loaded or env overrides cannot be coerced."""


def load_settings(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective settings with precedence env > file > defaults."""

    resolved_path = _resolve_settings_path(path)
    env_map = dict(os.environ if environ is None else environ)

    file_payload = _load_toml_file(resolved_path, required=path is not None)
    merged = merge_settings(default_settings(), file_payload)
    merged = assert_valid_settings(merged)

    merged = merge_settings(merged, _collect_env_overrides(merged, env_map))
    merged = assert_valid_settings(merged)

    return normalize_paths(merged, base_dir=resolved_path.parent)


def apply_settings(settings: Mapping[str, Any]) -> None:
    """Push validated settings into the sequence registry, sources and logging."""

    validated = assert_valid_settings(settings)
    reset_sequences(start=validated["sequences"]["start"])
    set_fixtures_dir(validated["sources"]["fixtures_dir"] or None)

    observability = validated["observability"]
    if observability["enabled"]:
        configure_logging(
            level=observability["log_level"],
            log_format=observability["log_format"],
        )


def normalize_paths(settings: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Normalize configured path fields relative to ``base_dir``; empty paths stay empty."""

    materialized = merge_settings({}, settings)
    for field_path in PATH_FIELDS:
        value = _get_nested(materialized, field_path)
        if isinstance(value, str) and value:
            _set_nested(materialized, field_path, _normalize_one_path(value, base_dir))
    return materialized


def _resolve_settings_path(path: str | Path | None) -> Path:
    if path is None:
        return (Path.cwd() / DEFAULT_SETTINGS_FILE).resolve()
    return Path(path).expanduser().resolve()


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise SettingsLoadError(f"settings file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise SettingsLoadError(f"unable to read settings file {path}: {exc}") from exc

    return parsed


def _collect_env_overrides(
    settings: Mapping[str, object], environ: Mapping[str, str]
) -> dict[str, Any]:
    bindings = _build_bindings(settings)
    overrides: dict[str, Any] = {}
    for env_name in sorted(bindings):
        raw = environ.get(env_name)
        if raw is None:
            continue
        binding = bindings[env_name]
        _set_nested(overrides, binding.path, _coerce_env(raw, binding, env_name))
    return overrides


def _build_bindings(settings: Mapping[str, object]) -> dict[str, _Binding]:
    bindings: dict[str, _Binding] = {}
    for path, value in _iter_scalar_paths(settings):
        kind = _kind_for_value(value)
        if kind is not None:
            bindings[_env_name_for_path(path)] = _Binding(path=path, value_type=kind)
    return bindings


def _iter_scalar_paths(
    payload: Mapping[str, object],
    prefix: tuple[str, ...] = (),
) -> list[tuple[tuple[str, ...], object]]:
    pairs: list[tuple[tuple[str, ...], object]] = []
    for key in sorted(payload):
        value = payload[key]
        path = (*prefix, key)
        if isinstance(value, Mapping):
            pairs.extend(_iter_scalar_paths(value, path))
        else:
            pairs.append((path, value))
    return pairs


def _kind_for_value(value: object) -> Literal["str", "int", "bool"] | None:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, str):
        return "str"
    return None


def _coerce_env(raw: str, binding: _Binding, env_name: str) -> object:
    value = raw.strip()
    target = ".".join(binding.path)
    if binding.value_type == "str":
        return value
    if binding.value_type == "int":
        try:
            return int(value)
        except ValueError as exc:
            raise SettingsLoadError(f"{env_name} -> {target} must be an integer") from exc

    lowered = value.lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise SettingsLoadError(
        f"{env_name} -> {target} must be a boolean (true/false/1/0/yes/no/on/off)"
    )


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        next_node = cursor.get(part)
        if not isinstance(next_node, dict):
            next_node = {}
            cursor[part] = next_node
        cursor = next_node
    cursor[path[-1]] = value


def _get_nested(payload: Mapping[str, object], path: tuple[str, ...]) -> object | None:
    cursor: object = payload
    for part in path:
        if not isinstance(cursor, Mapping) or part not in cursor:
            return None
        cursor = cursor[part]
    return cursor


def _normalize_one_path(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(str(candidate))).as_posix()


def _env_name_for_path(path: tuple[str, ...]) -> str:
    return ENV_PREFIX + "_".join(part.upper() for part in path)


__all__ = [
    "SettingsLoadError",
    "apply_settings",
    "load_settings",
    "normalize_paths",
]
