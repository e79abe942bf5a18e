"""Recursive coercion of loosely-shaped description values into typed instances.

One walker serves two modes. The dry run (``check_value``) visits the whole
description, records every arity, missing-value, union-tag and scalar problem
and never calls a resolver or a constructor; registration uses it to surface
problems before any instance exists. The materialising run (``coerce_value``)
builds the instance and resolves markers on the way.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import PurePath
from typing import Any, Final

from fixture_forge.errors import (
    FieldPath,
    Issue,
    IssueCollector,
    IssueKind,
    ResolverError,
    raise_for_issues,
    render_path,
)
from fixture_forge.markers import Generated
from fixture_forge.observability.logging import get_logger
from fixture_forge.reflection import (
    ArrayShape,
    CompositeShape,
    OptionalShape,
    ScalarShape,
    Schema,
    SequenceShape,
    Shape,
    UnionShape,
    unwrap_optional,
)
from fixture_forge.resolvers import ResolutionRequest, Resolver
from fixture_forge.validation import (
    union_arity_message,
    unknown_field_message,
    unknown_variant_message,
)

_LOGGER = get_logger(__name__)


class _Invalid:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<invalid>"


_INVALID: Final = _Invalid()


def coerce_value(
    shape: Shape,
    value: object,
    *,
    resolver: Resolver | None = None,
    context: object = None,
    target: type | None = None,
    path: FieldPath = (),
    depth: int = 0,
) -> Any:
    """Build a value of exactly ``shape`` from ``value``.

    Raises a ``FixtureDefinitionError`` subclass for malformed input and
    ``ResolverError`` when a marker cannot be resolved.
    """

    walker = _Coercion(
        materialize=True,
        resolver=resolver,
        context=context,
        target=target if target is not None else _root_target(shape),
        depth=depth,
    )
    result = walker.value(shape, value, path)
    raise_for_issues(walker.issues(), target=_shape_name(shape))
    return result


def check_value(
    shape: Shape,
    value: object,
    *,
    path: FieldPath = (),
) -> tuple[Issue, ...]:
    """Dry run of ``coerce_value``: report every problem, build nothing."""

    walker = _Coercion(
        materialize=False,
        resolver=None,
        context=None,
        target=_root_target(shape),
        depth=0,
    )
    walker.value(shape, value, path)
    return walker.issues()


def convert_scalar(shape: ScalarShape, value: object) -> tuple[bool, object]:
    """Narrow conversion to a scalar shape; ``(False, value)`` when lossy or foreign."""

    if shape.literals is not None:
        matched = any(value == item and type(value) is type(item) for item in shape.literals)
        return matched, value
    if shape.accepts is None:
        return True, value
    for candidate in shape.accepts:
        ok, converted = _convert_to(candidate, value)
        if ok:
            return True, converted
    return False, value


class _Coercion:
    __slots__ = ("_context", "_depth", "_issues", "_materialize", "_resolver", "_target")

    def __init__(
        self,
        *,
        materialize: bool,
        resolver: Resolver | None,
        context: object,
        target: type | None,
        depth: int,
    ) -> None:
        self._materialize = materialize
        self._resolver = resolver
        self._context = context
        self._target = target
        self._depth = depth
        self._issues = IssueCollector()

    def issues(self) -> tuple[Issue, ...]:
        return self._issues.items()

    def value(
        self,
        shape: Shape,
        source: object,
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        """Coerce ``source``; with ``shared`` leaf values are used as-is, not copied."""
        if isinstance(source, Generated):
            return self._generated(shape, source, path)
        if isinstance(shape, OptionalShape):
            if source is None:
                return None
            return self.value(shape.inner, source, path, shared=shared)
        if isinstance(shape, CompositeShape):
            return self._composite(shape, source, path, shared=shared)
        if isinstance(shape, UnionShape):
            return self._union(shape, source, path, shared=shared)
        if isinstance(shape, ArrayShape):
            return self._array(shape, source, path, shared=shared)
        if isinstance(shape, SequenceShape):
            return self._sequence(shape, source, path, shared=shared)
        return self._scalar(shape, source, path, shared=shared)

    def build(
        self,
        schema: Schema,
        source: Mapping[object, object],
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        for key in source:
            if schema.field(key) is None:
                child = (*path, key) if isinstance(key, str) else path
                self._fail(IssueKind.SCHEMA_MISMATCH, child, unknown_field_message(key, schema))

        values: dict[str, object] = {}
        valid = True
        for spec in schema.fields:
            child = (*path, spec.name)
            if spec.name in source:
                resolved = self.value(spec.shape, source[spec.name], child, shared=shared)
            elif spec.has_default:
                resolved = spec.default_value() if self._materialize else None
            elif isinstance(spec.shape, OptionalShape):
                resolved = None
            else:
                resolved = self._fail(
                    IssueKind.MISSING_VALUE,
                    child,
                    f"no value for field {spec.name!r} of type {schema.name!r}; "
                    "supply it in a description layer or give the field a default",
                )
            if resolved is _INVALID:
                valid = False
            values[spec.name] = resolved

        if not valid or self._issues.has_issues:
            return _INVALID
        if not self._materialize:
            return None
        return schema.target(**values)

    def _composite(
        self,
        shape: CompositeShape,
        source: object,
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        if isinstance(source, shape.target):
            return self._literal(source, shared=shared)
        if not isinstance(source, Mapping):
            return self._fail(
                IssueKind.SCALAR_MISMATCH,
                path,
                f"expected a description or instance of {shape.name!r}, "
                f"got {type(source).__name__}",
            )
        return self.build(shape.schema, source, path, shared=shared)

    def _union(
        self,
        shape: UnionShape,
        source: object,
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        if shape.variant_for(source) is not None:
            return self._literal(source, shared=shared)

        if isinstance(source, str):
            variant = shape.variant(source)
            if variant is None:
                return self._fail(IssueKind.UNION_TAG, path, unknown_variant_message(source, shape))
            if variant.has_payload:
                return self._fail(
                    IssueKind.UNION_TAG,
                    path,
                    f"variant {source!r} of union {shape.name!r} carries a payload; "
                    f"describe it as {{{source!r}: {{...}}}}",
                )
            return variant.target() if self._materialize else None

        if not isinstance(source, Mapping):
            return self._fail(
                IssueKind.SCALAR_MISMATCH,
                path,
                f"expected a single-tag description for union {shape.name!r}, "
                f"got {type(source).__name__}",
            )
        if len(source) != 1:
            return self._fail(IssueKind.UNION_TAG, path, union_arity_message(shape, list(source)))

        ((tag, payload),) = source.items()
        variant = shape.variant(tag)
        if variant is None:
            return self._fail(IssueKind.UNION_TAG, path, unknown_variant_message(tag, shape))
        if not variant.has_payload:
            if payload is None or (isinstance(payload, Mapping) and not payload):
                return variant.target() if self._materialize else None
            return self._fail(
                IssueKind.UNION_TAG,
                (*path, variant.tag),
                f"variant {variant.tag!r} of union {shape.name!r} has no payload; "
                "expected None or an empty mapping",
            )
        return self._composite(variant.shape, payload, (*path, variant.tag), shared=shared)

    def _array(
        self,
        shape: ArrayShape,
        source: object,
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        if not isinstance(source, (list, tuple)):
            return self._fail(
                IssueKind.SCALAR_MISMATCH,
                path,
                f"expected a sequence of {shape.length} elements for {shape.name}, "
                f"got {type(source).__name__}",
            )
        if len(source) != shape.length:
            return self._fail(
                IssueKind.ARITY_MISMATCH,
                path,
                f"array expects {shape.length} elements but the description has {len(source)}",
            )
        items = [
            self.value(shape.element, item, (*path, index), shared=shared)
            for index, item in enumerate(source)
        ]
        return self._collect(items, shape.container)

    def _sequence(
        self,
        shape: SequenceShape,
        source: object,
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        if not isinstance(source, (list, tuple)):
            return self._fail(
                IssueKind.SCALAR_MISMATCH,
                path,
                f"expected a sequence for {shape.name}, got {type(source).__name__}",
            )
        items = [
            self.value(shape.element, item, (*path, index), shared=shared)
            for index, item in enumerate(source)
        ]
        return self._collect(items, shape.container)

    def _scalar(
        self,
        shape: ScalarShape,
        source: object,
        path: FieldPath,
        *,
        shared: bool = False,
    ) -> object:
        ok, converted = convert_scalar(shape, source)
        if not ok:
            return self._fail(
                IssueKind.SCALAR_MISMATCH,
                path,
                f"cannot use {type(source).__name__} value {source!r} for {shape.name!r}",
            )
        return self._literal(converted, shared=shared)

    def _generated(self, shape: Shape, marker: Generated, path: FieldPath) -> object:
        if not self._materialize:
            declared = marker.declared_type()
            if declared is not None and not _declared_type_fits(shape, declared):
                return self._fail(
                    IssueKind.SCALAR_MISMATCH,
                    path,
                    f"{marker.describe()} produces {_type_name(declared)}, "
                    f"which does not fit {_shape_name(shape)!r}",
                )
            return None

        field_path = render_path(path)
        if self._resolver is None:
            raise ResolverError(f"no resolver available for {marker.describe()} at {field_path!r}")
        request = ResolutionRequest(
            target=self._target,
            path=path,
            context=self._context,
            depth=self._depth,
        )
        try:
            produced = self._resolver(marker, request)
        except ResolverError:
            raise
        except Exception as exc:
            _LOGGER.warning(
                "fixture_resolver_failed",
                marker=marker.describe(),
                field_path=field_path,
                error=str(exc),
            )
            raise ResolverError(
                f"resolver failed for {marker.describe()} at {field_path!r}: {exc}"
            ) from exc
        if isinstance(produced, Generated):
            raise ResolverError(
                f"resolver returned another marker for {marker.describe()} at {field_path!r}"
            )
        # Resolver output belongs to the caller; only description literals are copied.
        return self.value(shape, produced, path, shared=True)

    def _collect(self, items: list[object], container: type) -> object:
        if any(item is _INVALID for item in items):
            return _INVALID
        if not self._materialize:
            return None
        return container(items)

    def _literal(self, value: object, *, shared: bool = False) -> object:
        if not self._materialize:
            return None
        if shared:
            return value
        return copy.deepcopy(value)

    def _fail(self, kind: IssueKind, path: FieldPath, message: str) -> object:
        self._issues.add(kind, path, message)
        return _INVALID


def _convert_to(target: type, value: object) -> tuple[bool, object]:
    if target is bool:
        return isinstance(value, bool), value
    if issubclass(target, Enum):
        return _convert_enum(target, value)
    if target is int:
        return isinstance(value, int) and not isinstance(value, bool), value
    if target is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, value
        return True, float(value)
    if target is Decimal:
        return _convert_decimal(value)
    if target in (datetime, date, time):
        return _convert_temporal(target, value)
    if issubclass(target, PurePath) and isinstance(value, str):
        return True, target(value)
    return isinstance(value, target), value


def _convert_enum(target: type[Enum], value: object) -> tuple[bool, object]:
    if isinstance(value, target):
        return True, value
    if isinstance(value, str) and value in target.__members__:
        return True, target[value]
    try:
        return True, target(value)
    except (TypeError, ValueError):
        return False, value


def _convert_decimal(value: object) -> tuple[bool, object]:
    if isinstance(value, Decimal):
        return True, value
    if isinstance(value, bool):
        return False, value
    if isinstance(value, (int, str)):
        try:
            return True, Decimal(value)
        except InvalidOperation:
            return False, value
    return False, value


def _convert_temporal(target: type, value: object) -> tuple[bool, object]:
    if target is date and isinstance(value, datetime):
        return False, value
    if isinstance(value, target):
        return True, value
    if isinstance(value, str):
        try:
            return True, target.fromisoformat(value)  # type: ignore[attr-defined]
        except ValueError:
            return False, value
    return False, value


def _declared_type_fits(shape: Shape, declared: Any) -> bool:
    if not isinstance(declared, type):
        return True
    shape = unwrap_optional(shape)
    if isinstance(shape, CompositeShape):
        return issubclass(declared, shape.target)
    if isinstance(shape, UnionShape):
        return any(issubclass(declared, variant.target) for variant in shape.variants)
    if isinstance(shape, (ArrayShape, SequenceShape)):
        return issubclass(declared, (list, tuple))
    if shape.accepts is None:
        return True
    for candidate in shape.accepts:
        if issubclass(declared, candidate):
            return True
        if candidate is float and issubclass(declared, int) and not issubclass(declared, bool):
            return True
        if candidate is Decimal and issubclass(declared, (int, str)):
            return True
    return False


def _root_target(shape: Shape) -> type | None:
    inner = unwrap_optional(shape)
    return inner.target if isinstance(inner, CompositeShape) else None


def _shape_name(shape: Shape) -> str:
    return shape.name


def _type_name(value: Any) -> str:
    return getattr(value, "__name__", None) or repr(value)


__all__ = [
    "check_value",
    "coerce_value",
    "convert_scalar",
]
