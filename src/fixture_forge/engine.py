"""
fixture-forge: template registration and instance construction.

File: src/fixture_forge/engine.py

Purpose
- Register a dataclass with base defaults, derive named variants, and build
  fresh instances with call-site overrides.

Functional requirements
- Precedence: call-site > variants (latest first) > base defaults > the
  dataclass field default.
- Registration validates the new layer, merges it over the parent's resolved
  description and dry-runs construction; all static problems raise before any
  template exists.
- ``create`` repeats the checks for the call-site layer only and never invokes
  the resolver before the whole request has passed them.

Non-functional requirements
- Templates are immutable and safe to share between threads.
- Every ``create`` returns a new instance; literal defaults are deep-copied.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Generic, TypeVar

from fixture_forge.coercion import check_value, coerce_value
from fixture_forge.errors import raise_for_issues
from fixture_forge.merge import Description, copy_description, merge_descriptions
from fixture_forge.observability.logging import get_logger
from fixture_forge.reflection import CompositeShape, Schema, define_schema
from fixture_forge.resolvers import DefaultResolver, Resolver
from fixture_forge.sources import load_description
from fixture_forge.validation import assert_valid_description

T = TypeVar("T")

_LOGGER = get_logger(__name__)


class Template(Generic[T]):
    """Registered layer stack for one target dataclass."""

    __slots__ = ("_layers", "_logger", "_name", "_resolved", "_resolver", "_schema")

    def __init__(
        self,
        schema: Schema,
        layers: tuple[Description, ...],
        *,
        name: str,
        resolver: Resolver,
        resolved: Description,
        logger: Any = None,
    ) -> None:
        self._schema = schema
        self._layers = layers
        self._name = name
        self._resolver = resolver
        self._resolved = resolved
        self._logger = logger if logger is not None else _LOGGER

    @property
    def target(self) -> type[T]:
        return self._schema.target

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def name(self) -> str:
        return self._name

    @property
    def layers(self) -> tuple[Description, ...]:
        return tuple(copy_description(layer) for layer in self._layers)

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    @property
    def description(self) -> Description:
        """Merged description of every registered layer."""
        return copy_description(self._resolved)

    def variant(
        self,
        overlay: Mapping[str, Any] | None = None,
        /,
        *,
        name: str | None = None,
        **fields: Any,
    ) -> Template[T]:
        """Derive a template whose overlay sits above every layer of this one.

        As with ``define``, a field called ``name`` goes in ``overlay``.
        """

        layer = _call_layer(overlay, fields)
        resolved = _compile_layer(self._schema, self._resolved, layer)
        derived: Template[T] = Template(
            self._schema,
            (*self._layers, layer),
            name=name or self._name,
            resolver=self._resolver,
            resolved=resolved,
            logger=self._logger,
        )
        self._logger.debug(
            "fixture_variant_derived",
            template=derived.name,
            parent=self._name,
            layers=len(derived._layers),
            fields=sorted(layer),
        )
        return derived

    def create(self, overrides: Mapping[str, Any] | None = None, /, **fields: Any) -> T:
        return self.construct(_call_layer(overrides, fields))

    def create_with(
        self,
        context: object,
        overrides: Mapping[str, Any] | None = None,
        /,
        **fields: Any,
    ) -> T:
        """Build an instance; ``lazy_with_context`` markers receive ``context``."""
        return self.construct(_call_layer(overrides, fields), context=context)

    def construct(
        self,
        overrides: Mapping[str, Any] | None = None,
        *,
        context: object = None,
        depth: int = 0,
    ) -> T:
        """Build one instance from the resolved layers plus ``overrides``."""

        layer = _call_layer(overrides, {})
        if layer:
            description = _compile_layer(self._schema, self._resolved, layer)
        else:
            description = self._resolved
        instance = coerce_value(
            CompositeShape(self._schema.target),
            description,
            resolver=self._resolver,
            context=context,
            target=self._schema.target,
            depth=depth,
        )
        self._logger.debug(
            "fixture_instance_built",
            template=self._name,
            target=self._schema.name,
            overrides=sorted(layer),
            depth=depth,
        )
        return instance

    def __repr__(self) -> str:
        return f"Template({self._schema.name!r}, name={self._name!r}, layers={len(self._layers)})"


def define(
    target: type[T] | Schema,
    defaults: Mapping[str, Any] | None = None,
    /,
    *,
    name: str | None = None,
    resolver: Resolver | None = None,
    logger: Any = None,
    **fields: Any,
) -> Template[T]:
    """Register ``target`` with base defaults and return its template.

    Raises a ``FixtureDefinitionError`` subclass when the defaults name unknown
    fields or variants, give arrays the wrong length, leave a required field
    without a value, or hold a value its field cannot take.

    Fields that share a name with the keyword options (``name``, ``resolver``,
    ``logger``) must be given in ``defaults``.
    """

    schema = target if isinstance(target, Schema) else define_schema(target)
    layer = _call_layer(defaults, fields)
    resolved = _compile_layer(schema, {}, layer)
    template: Template[T] = Template(
        schema,
        (layer,),
        name=name or schema.name,
        resolver=resolver if resolver is not None else DefaultResolver(),
        resolved=resolved,
        logger=logger,
    )
    (logger if logger is not None else _LOGGER).debug(
        "fixture_template_registered",
        template=template.name,
        target=schema.name,
        fields=sorted(layer),
    )
    return template


def define_from(
    target: type[T] | Schema,
    source: str | Path,
    *,
    key: str | None = None,
    name: str | None = None,
    resolver: Resolver | None = None,
    logger: Any = None,
) -> Template[T]:
    """Register ``target`` with base defaults read from a description file."""

    defaults = load_description(source, key=key)
    return define(target, defaults, name=name or key, resolver=resolver, logger=logger)


def _compile_layer(
    schema: Schema,
    resolved: Mapping[str, Any],
    layer: Mapping[str, Any],
) -> Description:
    assert_valid_description(schema, layer)
    merged = merge_descriptions(schema, resolved, layer)
    raise_for_issues(check_value(CompositeShape(schema.target), merged), target=schema.name)
    return merged


def _call_layer(overrides: Mapping[str, Any] | None, fields: Mapping[str, Any]) -> Description:
    if overrides is None:
        layer: Description = {}
    elif isinstance(overrides, Mapping):
        layer = copy_description(overrides)
    else:
        raise TypeError(f"overrides must be a mapping, got {type(overrides).__name__}")
    layer.update(copy_description(dict(fields)))
    return layer


__all__ = [
    "Template",
    "define",
    "define_from",
]
