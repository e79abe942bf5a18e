"""
fixture-forge: unit tests for value coercion

File: tests/unit/coercion/test_coercion.py

Purpose
- Verify narrow scalar conversion, recursive composite construction, union and
  array handling, and marker resolution during construction.

What this test file should cover
- Lossless scalar conversions and rejection of lossy ones.
- Nested defaults, instance passthrough and literal deep copies.
- Union tag dispatch, payload-less variants and the single-tag rule.
- Array arity errors naming both lengths.
- Dry runs that report without building or resolving.
- Resolver failures surfacing as ``ResolverError`` chained to the cause.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import pytest

from fixture_forge.coercion import check_value, coerce_value, convert_scalar
from fixture_forge.errors import (
    ArityMismatchError,
    FixtureDefinitionError,
    IssueKind,
    MissingValueError,
    ResolverError,
    ScalarMismatchError,
    SchemaMismatchError,
)
from fixture_forge.markers import Generated, lazy, sequence, sequence_format
from fixture_forge.reflection import CompositeShape, ScalarShape, shape_of
from fixture_forge.resolvers import ResolutionRequest


class Kind(Enum):
    GOBLIN = "goblin"
    ORC = "orc"


@dataclass
class Pos:
    x: int = 0
    y: int = 0


@dataclass
class Health:
    current: int = 100
    max: int = 100


@dataclass
class Enemy:
    kind: Kind
    pos: Pos = field(default_factory=Pos)
    health: Health = field(default_factory=Health)


@dataclass
class Circle:
    radius: float


@dataclass
class Rectangle:
    width: float
    height: float


@dataclass
class Hidden:
    pass


@dataclass
class Level:
    name: str
    enemies: tuple[Enemy, Enemy, Enemy]
    shape: Circle | Rectangle | Hidden
    notes: list[str] = field(default_factory=list)
    boss: Enemy | None = None


def _request_resolver(value: object) -> Any:
    def resolve(marker: Generated, request: ResolutionRequest) -> object:
        return value

    return resolve


@pytest.mark.parametrize(
    ("annotation", "value", "expected"),
    [
        (int, 3, 3),
        (float, 3, 3.0),
        (float, 2.5, 2.5),
        (bool, True, True),
        (str, "x", "x"),
        (Kind, "ORC", Kind.ORC),
        (Kind, "goblin", Kind.GOBLIN),
        (Kind, Kind.ORC, Kind.ORC),
        (Decimal, "1.25", Decimal("1.25")),
        (Decimal, 7, Decimal(7)),
        (date, "2024-05-01", date(2024, 5, 1)),
        (datetime, "2024-05-01T10:30:00", datetime(2024, 5, 1, 10, 30)),
        (Path, "fixtures/a.toml", Path("fixtures/a.toml")),
        (Any, {"free": "form"}, {"free": "form"}),
        (Literal["a", "b"], "b", "b"),
    ],
)
def test_lossless_scalar_conversions(annotation: Any, value: object, expected: object) -> None:
    result = coerce_value(shape_of(annotation), value)

    assert result == expected
    assert type(result) is type(expected)


@pytest.mark.parametrize(
    ("annotation", "value"),
    [
        (int, True),
        (int, 3.0),
        (int, "3"),
        (bool, 1),
        (float, False),
        (str, 5),
        (Kind, "dragon"),
        (Decimal, "not-a-number"),
        (Decimal, 1.5),
        (date, datetime(2024, 5, 1, 10, 30)),
        (date, "yesterday"),
        (Literal["a", "b"], "c"),
        (Literal[1, 2], True),
    ],
)
def test_lossy_or_foreign_scalars_are_rejected(annotation: Any, value: object) -> None:
    with pytest.raises(ScalarMismatchError) as exc_info:
        coerce_value(shape_of(annotation), value)

    (issue,) = exc_info.value.issues
    assert issue.kind is IssueKind.SCALAR_MISMATCH


def test_convert_scalar_reports_without_raising() -> None:
    assert convert_scalar(ScalarShape(int, accepts=(int,)), 4) == (True, 4)
    assert convert_scalar(ScalarShape(int, accepts=(int,)), "4") == (False, "4")


def _level_description(**overrides: object) -> dict[str, object]:
    description: dict[str, object] = {
        "name": "cave",
        "enemies": [
            {"kind": "goblin", "pos": {"x": 1}},
            {"kind": "orc", "health": {"current": 50}},
            {"kind": Kind.GOBLIN},
        ],
        "shape": {"circle": {"radius": 2}},
    }
    description.update(overrides)
    return description


def test_composite_construction_fills_nested_defaults() -> None:
    level = coerce_value(CompositeShape(Level), _level_description())

    assert isinstance(level, Level)
    assert [enemy.kind for enemy in level.enemies] == [Kind.GOBLIN, Kind.ORC, Kind.GOBLIN]
    assert level.enemies[0].pos == Pos(x=1, y=0)
    assert level.enemies[1].health == Health(current=50, max=100)
    assert level.enemies[2].pos == Pos()
    assert isinstance(level.enemies, tuple)
    assert level.shape == Circle(radius=2.0)
    assert isinstance(level.shape.radius, float)
    assert level.notes == []
    assert level.boss is None


def test_instances_pass_through_as_copies() -> None:
    boss = Enemy(kind=Kind.ORC, pos=Pos(9, 9))
    level = coerce_value(CompositeShape(Level), _level_description(boss=boss))

    assert level.boss == boss
    assert level.boss is not boss
    assert level.boss.pos is not boss.pos


def test_literal_values_are_copied_per_construction() -> None:
    notes = ["a", "b"]
    description = _level_description(notes=notes)

    first = coerce_value(CompositeShape(Level), description)
    second = coerce_value(CompositeShape(Level), description)

    assert first.notes == ["a", "b"]
    assert first.notes is not notes
    assert first.notes is not second.notes


def test_payloadless_variant_accepts_tag_string_none_or_empty_mapping() -> None:
    for value in ("hidden", {"hidden": None}, {"hidden": {}}):
        level = coerce_value(CompositeShape(Level), _level_description(shape=value))
        assert level.shape == Hidden()


def test_payloadless_variant_rejects_payload() -> None:
    with pytest.raises(SchemaMismatchError):
        coerce_value(CompositeShape(Level), _level_description(shape={"hidden": {"x": 1}}))


def test_payload_variant_given_as_bare_tag_is_rejected() -> None:
    with pytest.raises(SchemaMismatchError, match="carries a payload"):
        coerce_value(CompositeShape(Level), _level_description(shape="circle"))


@pytest.mark.parametrize("value", [{}, {"circle": {"radius": 1}, "rectangle": {}}])
def test_union_requires_exactly_one_tag(value: dict[str, object]) -> None:
    with pytest.raises(SchemaMismatchError) as exc_info:
        coerce_value(CompositeShape(Level), _level_description(shape=value))

    (issue,) = exc_info.value.issues
    assert issue.kind is IssueKind.UNION_TAG
    assert issue.path == "shape"


def test_union_instance_passes_through() -> None:
    rectangle = Rectangle(width=1.0, height=2.0)
    level = coerce_value(CompositeShape(Level), _level_description(shape=rectangle))

    assert level.shape == rectangle


def test_array_arity_error_names_both_lengths() -> None:
    description = _level_description(enemies=[{"kind": "orc"}, {"kind": "orc"}])

    with pytest.raises(ArityMismatchError) as exc_info:
        coerce_value(CompositeShape(Level), description)

    (issue,) = exc_info.value.issues
    assert issue.path == "enemies"
    assert "expects 3 elements" in issue.message
    assert "has 2" in issue.message


def test_missing_required_field_names_field_and_type() -> None:
    description = _level_description()
    del description["name"]

    with pytest.raises(MissingValueError) as exc_info:
        coerce_value(CompositeShape(Level), description)

    (issue,) = exc_info.value.issues
    assert issue.path == "name"
    assert "'name'" in issue.message
    assert "'Level'" in issue.message


def test_missing_nested_field_reports_array_path() -> None:
    description = _level_description(enemies=[{"kind": "orc"}, {}, {"kind": "orc"}])

    with pytest.raises(MissingValueError) as exc_info:
        coerce_value(CompositeShape(Level), description)

    assert [issue.path for issue in exc_info.value.issues] == ["enemies[1].kind"]


def test_mixed_issue_kinds_raise_base_error() -> None:
    description = _level_description(
        name=5,
        enemies=[{"kind": "orc"}],
    )

    with pytest.raises(FixtureDefinitionError) as exc_info:
        coerce_value(CompositeShape(Level), description)

    error = exc_info.value
    assert type(error) is FixtureDefinitionError
    assert error.kinds == frozenset({IssueKind.SCALAR_MISMATCH, IssueKind.ARITY_MISMATCH})


def test_check_value_reports_every_issue_without_building() -> None:
    issues = check_value(
        CompositeShape(Level),
        {"enemies": [{"kind": "dragon"}, {"kind": "orc"}, {"kind": "orc"}], "shape": {}},
    )

    assert {(issue.kind, issue.path) for issue in issues} == {
        (IssueKind.SCALAR_MISMATCH, "enemies[0].kind"),
        (IssueKind.MISSING_VALUE, "name"),
        (IssueKind.UNION_TAG, "shape"),
    }


def test_check_value_never_invokes_markers() -> None:
    calls: list[int] = []

    def compute() -> str:
        calls.append(1)
        return "generated"

    issues = check_value(CompositeShape(Level), _level_description(name=lazy(compute)))

    assert issues == ()
    assert calls == []


def test_check_value_rejects_marker_with_incompatible_type() -> None:
    issues = check_value(CompositeShape(Level), _level_description(name=sequence(int)))

    (issue,) = issues
    assert issue.kind is IssueKind.SCALAR_MISMATCH
    assert issue.path == "name"
    assert "sequence(int)" in issue.message


def test_markers_are_resolved_and_coerced() -> None:
    level = coerce_value(
        CompositeShape(Level),
        _level_description(name=sequence_format("level-{n}")),
        resolver=_request_resolver("level-7"),
    )

    assert level.name == "level-7"


def test_resolver_receives_target_and_path() -> None:
    seen: list[ResolutionRequest] = []

    def resolve(marker: Generated, request: ResolutionRequest) -> object:
        seen.append(request)
        return 3

    coerce_value(
        CompositeShape(Level),
        _level_description(
            enemies=[{"kind": "orc", "pos": {"x": sequence()}}, {"kind": "orc"}, {"kind": "orc"}],
        ),
        resolver=resolve,
        context="ctx",
    )

    (request,) = seen
    assert request.target is Level
    assert request.path == ("enemies", 0, "pos", "x")
    assert request.field_path == "enemies[0].pos.x"
    assert request.context == "ctx"


def test_marker_without_resolver_is_a_resolver_error() -> None:
    with pytest.raises(ResolverError, match="no resolver"):
        coerce_value(CompositeShape(Level), _level_description(name=sequence(str)))


def test_resolver_exception_is_chained() -> None:
    def resolve(marker: Generated, request: ResolutionRequest) -> object:
        raise MemoryError("allocation failed")

    with pytest.raises(ResolverError, match="allocation failed") as exc_info:
        coerce_value(
            CompositeShape(Level),
            _level_description(name=sequence(str)),
            resolver=resolve,
        )

    assert isinstance(exc_info.value.__cause__, MemoryError)


def test_resolver_returning_marker_is_rejected() -> None:
    with pytest.raises(ResolverError, match="another marker"):
        coerce_value(
            CompositeShape(Level),
            _level_description(name=sequence(str)),
            resolver=_request_resolver(sequence(str)),
        )


def test_resolver_result_of_wrong_type_is_a_scalar_mismatch() -> None:
    with pytest.raises(ScalarMismatchError):
        coerce_value(
            CompositeShape(Level),
            _level_description(name=lazy(lambda: 12)),
            resolver=_request_resolver(12),
        )
