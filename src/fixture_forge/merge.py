"""
fixture-forge: layered description merge.

File: src/fixture_forge/merge.py

Purpose
- Fold description layers, lowest precedence first, into one description.

Functional requirements
- A key present in a higher layer wins over the same key in a lower layer.
- When both layers describe a nested composite with mappings, the merge recurses
  per subfield so unspecified siblings fall through to the lower layer.
- Unions merge only when both layers name the same variant tag; a different tag
  replaces the lower value entirely.
- A fully-formed instance in the higher layer replaces without merging.
- Markers, ``None``, arrays and sequences replace wholesale.

Non-functional requirements
- Inputs are never mutated; the result shares no mutable containers with them.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

from fixture_forge.markers import Generated
from fixture_forge.reflection import CompositeShape, Schema, Shape, UnionShape, unwrap_optional

Description = dict[str, Any]


def merge_descriptions(
    schema: Schema,
    lower: Mapping[str, Any],
    higher: Mapping[str, Any],
) -> Description:
    """Return ``higher`` layered over ``lower`` for the fields of ``schema``."""

    merged: Description = {key: copy_description(value) for key, value in lower.items()}
    for key, value in higher.items():
        spec = schema.field(key)
        if spec is None or key not in merged:
            merged[key] = copy_description(value)
            continue
        merged[key] = merge_values(spec.shape, merged[key], value)
    return merged


def merge_layers(schema: Schema, layers: Iterable[Mapping[str, Any]]) -> Description:
    """Fold ``layers`` (lowest precedence first) into a single description."""

    merged: Description = {}
    for layer in layers:
        merged = merge_descriptions(schema, merged, layer)
    return merged


def merge_values(shape: Shape, lower: Any, higher: Any) -> Any:
    """Merge one field value of ``shape``; ``higher`` takes precedence."""

    if higher is None or isinstance(higher, Generated) or isinstance(lower, Generated):
        return copy_description(higher)
    shape = unwrap_optional(shape)

    if isinstance(shape, CompositeShape):
        if not isinstance(higher, Mapping):
            return copy_description(higher)
        base = _as_description(shape.target, lower)
        if base is None:
            return copy_description(higher)
        return merge_descriptions(shape.schema, base, higher)

    if isinstance(shape, UnionShape) and isinstance(higher, Mapping):
        return _merge_union(shape, lower, higher)

    return copy_description(higher)


def _merge_union(shape: UnionShape, lower: Any, higher: Mapping[Any, Any]) -> Any:
    if len(higher) != 1:
        return copy_description(higher)
    ((tag, payload),) = higher.items()
    variant = shape.variant(tag)
    if variant is None or not variant.has_payload or not isinstance(payload, Mapping):
        return copy_description(higher)

    lower_payload = _union_payload(shape, lower, variant.tag)
    if lower_payload is None:
        return copy_description(higher)
    return {tag: merge_descriptions(variant.schema, lower_payload, payload)}


def _union_payload(shape: UnionShape, lower: Any, tag: str) -> Mapping[str, Any] | None:
    held = shape.variant_for(lower)
    if held is not None:
        return _as_description(held.target, lower) if held.tag == tag else None
    if isinstance(lower, Mapping) and len(lower) == 1:
        ((lower_tag, lower_payload),) = lower.items()
        if lower_tag == tag and isinstance(lower_payload, Mapping):
            return lower_payload
    return None


def _as_description(target: type, value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, target):
        # Opened against the declared target; subclass-only fields are not carried.
        return {
            item.name: getattr(value, item.name)
            for item in dataclasses.fields(target)
            if item.init
        }
    return None


def copy_description(value: Any) -> Any:
    # Structural copy of description containers; leaves are shared.
    if isinstance(value, Mapping):
        return {key: copy_description(item) for key, item in value.items()}
    if isinstance(value, list):
        return [copy_description(item) for item in value]
    if isinstance(value, tuple) and type(value) is tuple:
        return tuple(copy_description(item) for item in value)
    return value


__all__ = [
    "Description",
    "copy_description",
    "merge_descriptions",
    "merge_layers",
    "merge_values",
]
