"""Static validation of sparse descriptions against a schema.

Validation only checks that every key names a real field or union variant, at
every depth the description reaches. Array lengths, missing values and scalar
conversions are reported by the coercion dry run so each problem kind surfaces
on its own.
"""

from __future__ import annotations

import difflib
from collections.abc import Mapping
from dataclasses import dataclass

from fixture_forge.errors import FieldPath, Issue, IssueCollector, IssueKind, raise_for_issues
from fixture_forge.markers import Generated
from fixture_forge.reflection import (
    ArrayShape,
    CompositeShape,
    Schema,
    SequenceShape,
    Shape,
    UnionShape,
    unwrap_optional,
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    issues: tuple[Issue, ...]

    @property
    def is_valid(self) -> bool:
        return not self.issues


def validate_description(
    schema: Schema,
    description: Mapping[str, object],
    *,
    path: FieldPath = (),
) -> ValidationResult:
    """Check every key of ``description`` against ``schema`` and collect all issues."""

    if not isinstance(description, Mapping):
        raise TypeError(f"descriptions must be mappings, got {type(description).__name__}")
    issues = IssueCollector()
    _validate_mapping(schema, description, path, issues)
    return ValidationResult(issues=issues.items())


def assert_valid_description(
    schema: Schema,
    description: Mapping[str, object],
    *,
    path: FieldPath = (),
) -> None:
    """Validate and raise ``SchemaMismatchError`` on any unknown field or tag."""

    result = validate_description(schema, description, path=path)
    raise_for_issues(result.issues, target=schema.name)


def unknown_field_message(key: object, schema: Schema) -> str:
    message = f"unknown field {key!r}: type {schema.name!r} has no such member; check for a typo"
    return message + _suggestion(key, schema.field_names)


def unknown_variant_message(tag: object, shape: UnionShape) -> str:
    message = f"unknown variant {tag!r}: union {shape.name!r} has no such variant"
    return message + _suggestion(tag, shape.tags)


def union_arity_message(shape: UnionShape, keys: list[object]) -> str:
    listed = ", ".join(repr(key) for key in keys) or "none"
    return (
        f"union {shape.name!r} value must name exactly one variant tag, "
        f"got {len(keys)}: {listed}"
    )


def _validate_mapping(
    schema: Schema,
    description: Mapping[object, object],
    path: FieldPath,
    issues: IssueCollector,
) -> None:
    for key, value in description.items():
        spec = schema.field(key)
        if spec is None:
            child = (*path, key) if isinstance(key, str) else path
            issues.add(IssueKind.SCHEMA_MISMATCH, child, unknown_field_message(key, schema))
            continue
        _validate_value(spec.shape, value, (*path, spec.name), issues)


def _validate_value(shape: Shape, value: object, path: FieldPath, issues: IssueCollector) -> None:
    if value is None or isinstance(value, Generated):
        return
    shape = unwrap_optional(shape)

    if isinstance(shape, CompositeShape):
        if isinstance(value, Mapping):
            _validate_mapping(shape.schema, value, path, issues)
        return

    if isinstance(shape, UnionShape):
        if isinstance(value, Mapping):
            _validate_union(shape, value, path, issues)
        elif isinstance(value, str) and shape.variant(value) is None:
            issues.add(IssueKind.UNION_TAG, path, unknown_variant_message(value, shape))
        return

    if isinstance(shape, (ArrayShape, SequenceShape)) and isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _validate_value(shape.element, item, (*path, index), issues)


def _validate_union(
    shape: UnionShape,
    value: Mapping[object, object],
    path: FieldPath,
    issues: IssueCollector,
) -> None:
    if len(value) != 1:
        issues.add(IssueKind.UNION_TAG, path, union_arity_message(shape, list(value)))
        return
    ((tag, payload),) = value.items()
    variant = shape.variant(tag)
    if variant is None:
        issues.add(IssueKind.UNION_TAG, path, unknown_variant_message(tag, shape))
        return
    if isinstance(payload, Mapping):
        _validate_mapping(variant.schema, payload, (*path, variant.tag), issues)


def _suggestion(key: object, candidates: tuple[str, ...]) -> str:
    if not isinstance(key, str):
        return ""
    matches = difflib.get_close_matches(key, candidates, n=1)
    if not matches:
        return ""
    return f" (did you mean {matches[0]!r}?)"


__all__ = [
    "ValidationResult",
    "assert_valid_description",
    "union_arity_message",
    "unknown_field_message",
    "unknown_variant_message",
    "validate_description",
]
