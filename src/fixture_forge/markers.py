"""Resolver markers: defaults produced at construction time instead of taken literally.

Any description value that is not a ``Generated`` instance is literal data.
"""

from __future__ import annotations

import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


class Generated:
    """Base class for values that defer to the dynamic-value resolver."""

    __slots__ = ()

    def declared_type(self) -> Any | None:
        """Type the resolver is expected to produce, when known up front."""
        return None

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class SequenceMarker(Generated):
    value_type: type = int

    def __post_init__(self) -> None:
        if not isinstance(self.value_type, type):
            raise TypeError(f"sequence value_type must be a type, got {self.value_type!r}")

    def declared_type(self) -> Any | None:
        return self.value_type

    def describe(self) -> str:
        return f"sequence({self.value_type.__name__})"


@dataclass(frozen=True, slots=True)
class SequenceFormatMarker(Generated):
    template: str

    def __post_init__(self) -> None:
        if not isinstance(self.template, str):
            raise TypeError(f"sequence_format template must be a string, got {self.template!r}")
        try:
            self.render(0)
        except (IndexError, KeyError, ValueError) as exc:
            raise ValueError(f"invalid sequence_format template {self.template!r}: {exc}") from exc

    def render(self, number: int) -> str:
        return self.template.format(number, n=number)

    def declared_type(self) -> Any | None:
        return str

    def describe(self) -> str:
        return f"sequence_format({self.template!r})"


@dataclass(frozen=True, slots=True)
class LazyMarker(Generated):
    compute: Callable[[], object]

    def declared_type(self) -> Any | None:
        return _return_annotation(self.compute)

    def describe(self) -> str:
        return f"lazy({_callable_name(self.compute)})"


@dataclass(frozen=True, slots=True)
class LazyContextMarker(Generated):
    compute: Callable[[Any], object]

    def declared_type(self) -> Any | None:
        return _return_annotation(self.compute)

    def describe(self) -> str:
        return f"lazy_with_context({_callable_name(self.compute)})"


@dataclass(frozen=True, slots=True)
class AssociationMarker(Generated):
    template: Any

    def declared_type(self) -> Any | None:
        return getattr(self.template, "target", None)

    def describe(self) -> str:
        return f"association({getattr(self.template, 'name', self.template)!r})"


def sequence(value_type: type = int) -> SequenceMarker:
    """Auto-incrementing counter, converted with ``value_type(n)``."""
    return SequenceMarker(value_type)


def sequence_format(template: str) -> SequenceFormatMarker:
    """Formatted counter string, e.g. ``sequence_format("user{n}@example.com")``."""
    return SequenceFormatMarker(template)


def lazy(compute: Callable[[], object]) -> LazyMarker:
    if not callable(compute):
        raise TypeError(f"lazy expects a callable, got {compute!r}")
    return LazyMarker(compute)


def lazy_with_context(compute: Callable[[Any], object]) -> LazyContextMarker:
    """Computed value receiving the context passed to ``Template.create_with``."""
    if not callable(compute):
        raise TypeError(f"lazy_with_context expects a callable, got {compute!r}")
    return LazyContextMarker(compute)


def association(template: Any) -> AssociationMarker:
    if not callable(getattr(template, "construct", None)):
        raise TypeError(f"association expects a Template, got {template!r}")
    return AssociationMarker(template)


def is_generated(value: object) -> bool:
    return isinstance(value, Generated)


def _return_annotation(func: Callable[..., object]) -> Any | None:
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        return None
    return hints.get("return")


def _callable_name(func: Callable[..., object]) -> str:
    return getattr(func, "__qualname__", None) or repr(func)


__all__ = [
    "AssociationMarker",
    "Generated",
    "LazyContextMarker",
    "LazyMarker",
    "SequenceFormatMarker",
    "SequenceMarker",
    "association",
    "is_generated",
    "lazy",
    "lazy_with_context",
    "sequence",
    "sequence_format",
]
