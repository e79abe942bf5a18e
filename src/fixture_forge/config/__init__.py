"""
fixture-forge config package public API.

File: src/fixture_forge/config/__init__.py

Purpose
- Export settings loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``fixture_forge.toml`` + ``FIXTURE_FORGE_`` env overrides.
- Fail fast with clear structured validation/load errors.

Non-functional requirements
- Keep import-time surface small; nothing is applied until ``apply_settings``.
"""

from fixture_forge.config.loader import (
    SettingsLoadError,
    apply_settings,
    load_settings,
    normalize_paths,
)
from fixture_forge.config.schema import (
    DEFAULT_SETTINGS,
    PATH_FIELDS,
    FixtureForgeSettings,
    SettingsValidationError,
    SettingsValidationIssue,
    SettingsValidationResult,
    assert_valid_settings,
    default_settings,
    merge_settings,
    validate_settings,
)

__all__ = [
    "DEFAULT_SETTINGS",
    "FixtureForgeSettings",
    "PATH_FIELDS",
    "SettingsLoadError",
    "SettingsValidationError",
    "SettingsValidationIssue",
    "SettingsValidationResult",
    "apply_settings",
    "assert_valid_settings",
    "default_settings",
    "load_settings",
    "merge_settings",
    "normalize_paths",
    "validate_settings",
]
