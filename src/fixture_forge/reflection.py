"""Schema reflection over dataclass target types.

A schema is derived once per dataclass from ``dataclasses.fields`` and the
resolved type hints, and cached. Composite and union shapes refer to their
classes and resolve nested schemas lazily, so self-referential dataclasses
reflect without unbounded recursion.
"""

from __future__ import annotations

import dataclasses
import re
import threading
import types
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated, Any, Final, Literal, Union, get_args, get_origin

_CAMEL_CASE_BOUNDARY: Final[re.Pattern[str]] = re.compile(r"([a-z0-9])([A-Z])")
_NONE_TYPE: Final[type] = type(None)


class _NoDefault:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<no default>"


NO_DEFAULT: Final = _NoDefault()

_SCHEMA_CACHE_LOCK = threading.Lock()
_SCHEMA_CACHE: dict[type, Schema] = {}


class ShapeKind(StrEnum):
    SCALAR = "scalar"
    COMPOSITE = "composite"
    ARRAY = "array"
    SEQUENCE = "sequence"
    UNION = "union"
    OPTIONAL = "optional"


@dataclass(frozen=True, slots=True)
class FixedLength:
    """``Annotated`` metadata pinning ``tuple[X, ...]`` or ``list[X]`` to ``length`` items."""

    length: int

    def __post_init__(self) -> None:
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise TypeError(f"FixedLength expects an integer, got {type(self.length).__name__}")
        if self.length < 0:
            raise ValueError("FixedLength must be >= 0")


@dataclass(frozen=True, slots=True)
class ScalarShape:
    """Leaf value. ``accepts=None`` means any value is accepted as-is."""

    annotation: Any
    accepts: tuple[type, ...] | None
    literals: tuple[object, ...] | None = None

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.SCALAR

    @property
    def name(self) -> str:
        return _annotation_name(self.annotation)


@dataclass(frozen=True, slots=True)
class CompositeShape:
    target: type

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.COMPOSITE

    @property
    def name(self) -> str:
        return self.target.__name__

    @property
    def schema(self) -> Schema:
        return define_schema(self.target)


@dataclass(frozen=True, slots=True)
class ArrayShape:
    length: int
    element: Shape
    container: type = tuple

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.ARRAY

    @property
    def name(self) -> str:
        return f"Array[{self.length}, {self.element.name}]"


@dataclass(frozen=True, slots=True)
class SequenceShape:
    element: Shape
    container: type = list

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.SEQUENCE

    @property
    def name(self) -> str:
        return f"{self.container.__name__}[{self.element.name}]"


@dataclass(frozen=True, slots=True)
class UnionVariant:
    tag: str
    target: type

    @property
    def schema(self) -> Schema:
        return define_schema(self.target)

    @property
    def shape(self) -> CompositeShape:
        return CompositeShape(self.target)

    @property
    def has_payload(self) -> bool:
        return bool(self.schema.fields)


@dataclass(frozen=True, slots=True)
class UnionShape:
    name: str
    variants: tuple[UnionVariant, ...]

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.UNION

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(variant.tag for variant in self.variants)

    def variant(self, tag: object) -> UnionVariant | None:
        for candidate in self.variants:
            if candidate.tag == tag:
                return candidate
        return None

    def variant_for(self, value: object) -> UnionVariant | None:
        """Return the variant whose class ``value`` is an instance of (exact class first)."""
        for candidate in self.variants:
            if type(value) is candidate.target:
                return candidate
        for candidate in self.variants:
            if isinstance(value, candidate.target):
                return candidate
        return None


@dataclass(frozen=True, slots=True)
class OptionalShape:
    inner: Shape

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.OPTIONAL

    @property
    def name(self) -> str:
        return f"Optional[{self.inner.name}]"


Shape = ScalarShape | CompositeShape | ArrayShape | SequenceShape | UnionShape | OptionalShape


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    shape: Shape
    default: object = NO_DEFAULT
    default_factory: Callable[[], object] | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT or self.default_factory is not None

    def default_value(self) -> object:
        """Return the type-level default; factories run once per call."""
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is NO_DEFAULT:
            raise LookupError(f"field {self.name!r} has no type-level default")
        return self.default


@dataclass(frozen=True, slots=True)
class Schema:
    """Ordered field shapes of one dataclass."""

    target: type
    fields: tuple[FieldSpec, ...]
    _index: Mapping[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {spec.name: spec for spec in self.fields})

    @property
    def name(self) -> str:
        return self.target.__name__

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def field(self, name: object) -> FieldSpec | None:
        if not isinstance(name, str):
            return None
        return self._index.get(name)


def define_schema(target: type) -> Schema:
    """Reflect ``target`` (a dataclass) into a cached ``Schema``."""

    if not isinstance(target, type) or not dataclasses.is_dataclass(target):
        raise TypeError(f"fixture targets must be dataclass types, got {target!r}")

    with _SCHEMA_CACHE_LOCK:
        cached = _SCHEMA_CACHE.get(target)
    if cached is not None:
        return cached

    hints = typing.get_type_hints(target, include_extras=True)
    specs: list[FieldSpec] = []
    for item in dataclasses.fields(target):
        if not item.init:
            continue
        factory = item.default_factory
        specs.append(
            FieldSpec(
                name=item.name,
                shape=shape_of(hints.get(item.name, Any)),
                default=NO_DEFAULT if item.default is dataclasses.MISSING else item.default,
                default_factory=None if factory is dataclasses.MISSING else factory,
            )
        )
    schema = Schema(target=target, fields=tuple(specs))

    with _SCHEMA_CACHE_LOCK:
        return _SCHEMA_CACHE.setdefault(target, schema)


def fields_of(target: type) -> tuple[FieldSpec, ...]:
    return define_schema(target).fields


def shape_of(annotation: Any) -> Shape:
    """Map a type annotation onto its construction shape."""

    origin = get_origin(annotation)

    if origin is Annotated:
        inner, *metadata = get_args(annotation)
        fixed = next((item for item in metadata if isinstance(item, FixedLength)), None)
        inner_shape = shape_of(inner)
        if fixed is None:
            return inner_shape
        if not isinstance(inner_shape, SequenceShape):
            raise TypeError(
                f"FixedLength applies to tuple[X, ...] or list[X], got {_annotation_name(inner)}"
            )
        return ArrayShape(
            length=fixed.length,
            element=inner_shape.element,
            container=inner_shape.container,
        )

    alias_name = getattr(annotation, "__name__", None)
    alias_value = getattr(annotation, "__value__", None)
    if alias_value is not None and isinstance(alias_name, str):
        if get_origin(alias_value) in (Union, types.UnionType):
            return _union_shape(alias_value, name=alias_name)
        return shape_of(alias_value)

    if origin in (Union, types.UnionType):
        return _union_shape(annotation, name=None)

    if origin is tuple:
        args = get_args(annotation)
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceShape(element=shape_of(args[0]), container=tuple)
        if args and all(arg == args[0] for arg in args):
            return ArrayShape(length=len(args), element=shape_of(args[0]))
        return ScalarShape(annotation, accepts=(tuple,))

    if origin is list:
        args = get_args(annotation)
        return SequenceShape(element=shape_of(args[0] if args else Any), container=list)

    if origin is Literal:
        return ScalarShape(annotation, accepts=None, literals=get_args(annotation))

    if origin is not None:
        return ScalarShape(annotation, accepts=(origin,) if isinstance(origin, type) else None)

    if annotation is tuple:
        return SequenceShape(element=shape_of(Any), container=tuple)
    if annotation is list:
        return SequenceShape(element=shape_of(Any), container=list)

    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return CompositeShape(annotation)

    if annotation is None or annotation is _NONE_TYPE:
        return ScalarShape(annotation, accepts=(_NONE_TYPE,))

    if annotation is Any or annotation is object or not isinstance(annotation, type):
        return ScalarShape(annotation, accepts=None)

    return ScalarShape(annotation, accepts=(annotation,))


def variant_tag(variant: type) -> str:
    """Return the union tag for a variant class (``__tag__`` or snake_case name)."""

    explicit = getattr(variant, "__tag__", None)
    if isinstance(explicit, str) and explicit.strip():
        return explicit.strip()
    return _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", variant.__name__).lower()


def unwrap_optional(shape: Shape) -> Shape:
    while isinstance(shape, OptionalShape):
        shape = shape.inner
    return shape


def _union_shape(annotation: Any, *, name: str | None) -> Shape:
    members = get_args(annotation)
    present = tuple(member for member in members if member is not _NONE_TYPE)
    optional = len(present) != len(members)

    inner: Shape
    if len(present) == 1:
        inner = shape_of(present[0])
    elif all(isinstance(member, type) and dataclasses.is_dataclass(member) for member in present):
        variants = tuple(UnionVariant(tag=variant_tag(member), target=member) for member in present)
        tags = [variant.tag for variant in variants]
        duplicates = sorted({tag for tag in tags if tags.count(tag) > 1})
        if duplicates:
            raise TypeError(f"union variants share tags: {', '.join(duplicates)}")
        union_name = name or " | ".join(member.__name__ for member in present)
        inner = UnionShape(name=union_name, variants=variants)
    else:
        accepted: list[type] = []
        for member in present:
            member_type = get_origin(member) or member
            if not isinstance(member_type, type):
                accepted = []
                break
            accepted.append(member_type)
        stripped = Union[present] if len(present) > 1 else present[0]  # noqa: UP007
        inner = ScalarShape(stripped, accepts=tuple(accepted) if accepted else None)

    return OptionalShape(inner) if optional else inner


def _annotation_name(annotation: Any) -> str:
    if annotation is None or annotation is _NONE_TYPE:
        return "None"
    if isinstance(annotation, type) and get_origin(annotation) is None:
        return annotation.__name__
    return repr(annotation).replace("typing.", "")


__all__ = [
    "ArrayShape",
    "CompositeShape",
    "FieldSpec",
    "FixedLength",
    "NO_DEFAULT",
    "OptionalShape",
    "ScalarShape",
    "Schema",
    "SequenceShape",
    "Shape",
    "ShapeKind",
    "UnionShape",
    "UnionVariant",
    "define_schema",
    "fields_of",
    "shape_of",
    "unwrap_optional",
    "variant_tag",
]
