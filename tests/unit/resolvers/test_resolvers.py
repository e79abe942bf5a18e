"""
fixture-forge: unit tests for dynamic-value resolution

File: tests/unit/resolvers/test_resolvers.py

Purpose
- Verify sequence counters, formatted sequences, lazy values, caller context
  and association depth limits as resolved by ``DefaultResolver``.

What this test file should cover
- Counter start, increment, peek, reset and invalid starts.
- Distinct counters per ``(target, path)`` key, including colliding paths on
  different targets.
- Concurrent increments never hand out the same number twice.
- Unknown marker types surface as ``ResolverError``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

import pytest

from fixture_forge.engine import define
from fixture_forge.errors import ResolverError
from fixture_forge.markers import (
    Generated,
    association,
    lazy,
    lazy_with_context,
    sequence,
    sequence_format,
)
from fixture_forge.resolvers import (
    DefaultResolver,
    ResolutionRequest,
    SequenceRegistry,
    default_sequence_registry,
    reset_sequences,
)


@dataclass
class Author:
    id: int
    name: str = "anon"


@dataclass
class Book:
    id: int


class Unsupported(Generated):
    __slots__ = ()


def _request(
    target: type | None = Author,
    *path: str | int,
    **kwargs: object,
) -> ResolutionRequest:
    return ResolutionRequest(target, path or ("id",), **kwargs)  # type: ignore[arg-type]


def test_registry_counts_from_start_and_peeks() -> None:
    registry = SequenceRegistry(start=5)
    key = (Author, ("id",))

    assert registry.peek(key) is None
    assert [registry.next_value(key) for _ in range(3)] == [5, 6, 7]
    assert registry.peek(key) == 7
    assert len(registry) == 1


def test_registry_reset_clears_and_optionally_moves_start() -> None:
    registry = SequenceRegistry()
    key = (Author, ("id",))
    registry.next_value(key)
    registry.next_value(key)

    registry.reset()
    assert registry.next_value(key) == 1

    registry.reset(start=10)
    assert registry.start == 10
    assert registry.next_value(key) == 10


@pytest.mark.parametrize("start", [-1, True, 1.5, "1"])
def test_registry_rejects_invalid_start(start: object) -> None:
    with pytest.raises(ValueError, match="sequence start"):
        SequenceRegistry(start=start)  # type: ignore[arg-type]


def test_same_path_on_different_targets_never_collides() -> None:
    registry = SequenceRegistry()

    assert registry.next_value((Author, ("id",))) == 1
    assert registry.next_value((Book, ("id",))) == 1
    assert registry.next_value((Author, ("id",))) == 2
    assert registry.next_value((Author, ("nested", 0, "id"))) == 1


def test_concurrent_increments_are_unique() -> None:
    registry = SequenceRegistry()
    key = (Author, ("id",))
    seen: list[int] = []
    seen_lock = threading.Lock()

    def worker() -> None:
        values = [registry.next_value(key) for _ in range(250)]
        with seen_lock:
            seen.extend(values)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(seen) == list(range(1, 2001))


def test_reset_sequences_resets_process_wide_registry() -> None:
    registry = default_sequence_registry()
    registry.next_value((Author, ("id",)))

    reset_sequences(start=3)

    assert registry.start == 3
    assert registry.next_value((Author, ("id",))) == 3


def test_default_resolver_handles_each_builtin_marker() -> None:
    resolver = DefaultResolver(SequenceRegistry())

    assert resolver(sequence(), _request()) == 1
    assert resolver(sequence(str), _request()) == "2"
    assert resolver(sequence_format("user{n}@example.com"), _request(Author, "email")) == (
        "user1@example.com"
    )
    assert resolver(sequence_format("#{}"), _request(Author, "email")) == "#2"
    assert resolver(lazy(lambda: "computed"), _request()) == "computed"
    assert resolver(lazy_with_context(lambda ctx: ctx * 2), _request(context=21)) == 42


def test_default_resolver_uses_process_registry_without_argument() -> None:
    resolver = DefaultResolver()

    assert resolver.registry is default_sequence_registry()
    assert resolver(sequence(), _request()) == 1
    assert default_sequence_registry().peek((Author, ("id",))) == 1


def test_unknown_marker_type_is_a_resolver_error() -> None:
    with pytest.raises(ResolverError, match="no resolution rule"):
        DefaultResolver()(Unsupported(), _request())


def test_association_builds_one_level_deeper() -> None:
    authors = define(Author, id=sequence())
    resolver = DefaultResolver()

    built = resolver(association(authors), _request(Book, "author", depth=2))

    assert built == Author(id=1)


def test_association_depth_limit() -> None:
    authors = define(Author, id=1)

    with pytest.raises(ResolverError, match="depth limit of 3"):
        DefaultResolver()(association(authors), _request(Book, "author", depth=3))


def test_marker_factories_validate_arguments() -> None:
    with pytest.raises(TypeError):
        sequence("int")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="sequence_format"):
        sequence_format("{missing}")
    with pytest.raises(TypeError):
        lazy(42)  # type: ignore[arg-type]
    with pytest.raises(TypeError, match="Template"):
        association(Author)
