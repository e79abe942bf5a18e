"""
Dynamic-value resolution for generated defaults.

This module is the seam between the static construction engine and values that
change from one construction to the next:
- sequence counters keyed by ``(target class, field path)``, never by hash
- formatted sequence strings
- lazy values, with or without the caller context
- single-hop associations that build another template

The engine calls a ``Resolver`` synchronously for each marker it meets. Any
callable with the same signature can replace ``DefaultResolver``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fixture_forge.constants import DEFAULT_SEQUENCE_START, MAX_ASSOCIATION_DEPTH
from fixture_forge.errors import FieldPath, ResolverError, render_path
from fixture_forge.markers import (
    AssociationMarker,
    Generated,
    LazyContextMarker,
    LazyMarker,
    SequenceFormatMarker,
    SequenceMarker,
)
from fixture_forge.observability.logging import get_logger

SequenceKey = tuple[object, FieldPath]

_LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionRequest:
    """Where a marker sits and what the caller handed to ``create_with``."""

    target: type | None
    path: FieldPath
    context: object = None
    depth: int = 0

    @property
    def field_path(self) -> str:
        return render_path(self.path)

    @property
    def sequence_key(self) -> SequenceKey:
        return (self.target, self.path)


Resolver = Callable[[Generated, ResolutionRequest], object]


def _validate_start(start: int) -> int:
    if isinstance(start, bool) or not isinstance(start, int):
        raise ValueError(f"sequence start must be an integer, got {type(start).__name__}")
    if start < 0:
        raise ValueError("sequence start must be >= 0")
    return start


class SequenceRegistry:
    """Thread-safe counters, one per sequence key."""

    __slots__ = ("_lock", "_start", "_values")

    def __init__(self, *, start: int = DEFAULT_SEQUENCE_START) -> None:
        self._lock = threading.Lock()
        self._start = _validate_start(start)
        self._values: dict[SequenceKey, int] = {}

    @property
    def start(self) -> int:
        with self._lock:
            return self._start

    def next_value(self, key: SequenceKey) -> int:
        with self._lock:
            current = self._values.get(key)
            value = self._start if current is None else current + 1
            self._values[key] = value
            return value

    def peek(self, key: SequenceKey) -> int | None:
        with self._lock:
            return self._values.get(key)

    def reset(self, *, start: int | None = None) -> None:
        with self._lock:
            self._values.clear()
            if start is not None:
                self._start = _validate_start(start)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


_DEFAULT_REGISTRY = SequenceRegistry()


def default_sequence_registry() -> SequenceRegistry:
    return _DEFAULT_REGISTRY


def reset_sequences(*, start: int | None = None) -> None:
    """Reset every counter of the process-wide registry."""
    _DEFAULT_REGISTRY.reset(start=start)
    _LOGGER.debug("fixture_sequences_reset", start=_DEFAULT_REGISTRY.start)


class DefaultResolver:
    """Resolve the built-in markers; sequences use ``registry`` or the process-wide one."""

    __slots__ = ("_registry",)

    def __init__(self, registry: SequenceRegistry | None = None) -> None:
        self._registry = registry

    @property
    def registry(self) -> SequenceRegistry:
        return self._registry if self._registry is not None else _DEFAULT_REGISTRY

    def __call__(self, marker: Generated, request: ResolutionRequest) -> object:
        if isinstance(marker, SequenceMarker):
            return marker.value_type(self.registry.next_value(request.sequence_key))
        if isinstance(marker, SequenceFormatMarker):
            return marker.render(self.registry.next_value(request.sequence_key))
        if isinstance(marker, LazyMarker):
            return marker.compute()
        if isinstance(marker, LazyContextMarker):
            return marker.compute(request.context)
        if isinstance(marker, AssociationMarker):
            return _build_association(marker, request)
        raise ResolverError(f"no resolution rule for {marker.describe()} at {request.field_path!r}")


def _build_association(marker: AssociationMarker, request: ResolutionRequest) -> Any:
    if request.depth >= MAX_ASSOCIATION_DEPTH:
        raise ResolverError(
            f"{marker.describe()} at {request.field_path!r} exceeds the association depth "
            f"limit of {MAX_ASSOCIATION_DEPTH}"
        )
    return marker.template.construct(None, context=request.context, depth=request.depth + 1)


__all__ = [
    "DefaultResolver",
    "ResolutionRequest",
    "Resolver",
    "SequenceKey",
    "SequenceRegistry",
    "default_sequence_registry",
    "reset_sequences",
]
