"""
fixture-forge: settings schema and validation.

File: src/fixture_forge/config/schema.py

Purpose
- Define authoritative settings defaults and strict validation rules.

Functional requirements
- Validate settings payloads and return structured errors (field path + message).
- Reject unknown sections and keys so typos in ``fixture_forge.toml`` surface.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from fixture_forge.constants import DEFAULT_SEQUENCE_START, LOG_FORMATS, LOG_LEVELS


class SequencesSettings(TypedDict):
    start: int


class SourcesSettings(TypedDict):
    fixtures_dir: str


class ObservabilitySettings(TypedDict):
    enabled: bool
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]


class FixtureForgeSettings(TypedDict):
    sequences: SequencesSettings
    sources: SourcesSettings
    observability: ObservabilitySettings


DEFAULT_SETTINGS: Final[FixtureForgeSettings] = {
    "sequences": {
        "start": DEFAULT_SEQUENCE_START,
    },
    "sources": {
        "fixtures_dir": "",
    },
    "observability": {
        "enabled": False,
        "log_level": "WARNING",
        "log_format": "text",
    },
}

# Settings paths normalized relative to the settings file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("sources", "fixtures_dir"),)


@dataclass(frozen=True, slots=True)
class SettingsValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class SettingsValidationResult:
    settings: dict[str, Any] | None
    issues: tuple[SettingsValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.settings is not None and not self.issues


class SettingsValidationError(ValueError):
    """Raised when strict settings validation fails."""

    def __init__(self, issues: Sequence[SettingsValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid settings:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[SettingsValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(SettingsValidationIssue(path=path, message=message))

    def items(self) -> tuple[SettingsValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_settings() -> FixtureForgeSettings:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_SETTINGS)


def merge_settings(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto ``base`` without mutating either."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_settings(settings: Mapping[str, object] | object) -> SettingsValidationResult:
    issues = _IssueCollector()
    root = _as_object(settings, "<root>", issues)
    if root is None:
        return SettingsValidationResult(settings=None, issues=issues.items())

    _reject_unknown_keys(root, {"sequences", "sources", "observability"}, "", issues)
    normalized: dict[str, Any] = {}
    _section(root, key="sequences", issues=issues, validator=_validate_sequences, out=normalized)
    _section(root, key="sources", issues=issues, validator=_validate_sources, out=normalized)
    _section(
        root,
        key="observability",
        issues=issues,
        validator=_validate_observability,
        out=normalized,
    )

    if issues.has_issues:
        return SettingsValidationResult(settings=None, issues=issues.items())
    return SettingsValidationResult(settings=normalized, issues=())


def assert_valid_settings(settings: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate settings and raise ``SettingsValidationError`` on failure."""

    result = validate_settings(settings)
    if result.settings is None:
        raise SettingsValidationError(result.issues)
    return result.settings


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        issues.add(key, "missing required section")
        return
    section = _as_object(raw, key, issues)
    if section is None:
        return
    out[key] = validator(section, key, issues)


def _validate_sequences(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    allowed = {"start"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "start" in payload:
        start = _as_int(payload["start"], _join(path, "start"), issues, minimum=0)
        if start is not None:
            out["start"] = start
    return out


def _validate_sources(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    allowed = {"fixtures_dir"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "fixtures_dir" in payload:
        fixtures_dir = _as_path_text(payload["fixtures_dir"], _join(path, "fixtures_dir"), issues)
        if fixtures_dir is not None:
            out["fixtures_dir"] = fixtures_dir
    return out


def _validate_observability(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    allowed = {"enabled", "log_level", "log_format"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}

    if "enabled" in payload:
        enabled = _as_bool(payload["enabled"], _join(path, "enabled"), issues)
        if enabled is not None:
            out["enabled"] = enabled

    if "log_level" in payload:
        log_level = _as_enum(
            payload["log_level"],
            _join(path, "log_level"),
            issues,
            allowed_values=LOG_LEVELS,
        )
        if log_level is not None:
            out["log_level"] = log_level

    if "log_format" in payload:
        log_format = _as_enum(
            payload["log_format"],
            _join(path, "log_format"),
            issues,
            allowed_values=LOG_FORMATS,
        )
        if log_format is not None:
            out["log_format"] = log_format

    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    # Empty is allowed and means "relative to the working directory".
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            nested = existing if isinstance(existing, dict) else {}
            _merge_into(nested, value)
            target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(value[key]) for key in sorted(value)}


__all__ = [
    "DEFAULT_SETTINGS",
    "FixtureForgeSettings",
    "ObservabilitySettings",
    "PATH_FIELDS",
    "SequencesSettings",
    "SettingsValidationError",
    "SettingsValidationIssue",
    "SettingsValidationResult",
    "SourcesSettings",
    "assert_valid_settings",
    "default_settings",
    "merge_settings",
    "validate_settings",
]
