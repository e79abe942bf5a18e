"""
fixture-forge: end-to-end construction scenarios

File: tests/integration/test_scenarios.py

Purpose
- Exercise the public package surface the way a test suite author would:
  register templates, derive variants and build instances for realistic models.

What this test file should cover
- Cross-referenced ids in a checkout aggregate.
- A fixed array of nested composites with enum kinds.
- Variant chaining, union tag switches and partial nested overrides.
- Typos, union tag counts and array lengths failing at registration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import pytest

import fixture_forge as ff


@dataclass
class User:
    id: int
    name: str


@dataclass
class Product:
    id: int
    seller_id: int


@dataclass
class Order:
    user_id: int
    product_id: int
    quantity: int = 1


@dataclass
class Checkout:
    user: User
    product: Product
    order: Order


class Kind(Enum):
    GOBLIN = "goblin"
    ORC = "orc"
    TROLL = "troll"


@dataclass
class Position:
    x: int = 0
    y: int = 0


@dataclass
class Health:
    current: int = 100
    max: int = 100


@dataclass
class Enemy:
    kind: Kind
    pos: Position = field(default_factory=Position)
    health: Health = field(default_factory=Health)


@dataclass
class Level:
    enemies: tuple[Enemy, Enemy, Enemy]


@dataclass
class Settings:
    volume: int = 5
    theme: str = "light"
    language: str = "en"


@dataclass
class Member:
    id: int
    active: bool = True
    age: int = 30
    nickname: str = ""
    settings: Settings = field(default_factory=Settings)


@dataclass
class Circle:
    radius: float


@dataclass
class Rectangle:
    width: float
    height: float


@dataclass
class Canvas:
    shape: Circle | Rectangle


def test_checkout_cross_reference() -> None:
    checkouts = ff.define(
        Checkout,
        user={"id": 1, "name": "Ada"},
        product={"id": 10, "seller_id": 1},
        order={"user_id": 1, "product_id": 10, "quantity": 2},
    )

    result = checkouts.create()

    assert result.order.user_id == result.user.id
    assert result.order.product_id == result.product.id
    assert result.order.quantity == 2


def test_array_of_nested_composites() -> None:
    levels = ff.define(
        Level,
        enemies=(
            {"kind": "goblin", "pos": {"x": 1, "y": 2}, "health": {"current": 10}},
            {"kind": Kind.ORC, "pos": {"x": 3}, "health": {"current": 50, "max": 60}},
            {"kind": "TROLL", "pos": {"x": 5}, "health": {"current": 90}},
        ),
    )

    level = levels.create()

    assert [enemy.kind for enemy in level.enemies] == [Kind.GOBLIN, Kind.ORC, Kind.TROLL]
    assert [enemy.pos.x for enemy in level.enemies] == [1, 3, 5]
    assert [enemy.health.current for enemy in level.enemies] == [10, 50, 90]
    assert level.enemies[1].health.max == 60
    assert level.enemies[2].pos.y == 0


def test_variant_chaining_is_additive() -> None:
    base = ff.define(Member, id=7, nickname="ada", settings={"volume": 3, "theme": "dark"})
    variant1 = base.variant(active=False)
    variant2 = variant1.variant(age=40)

    member = variant2.create()

    assert member.active is False
    assert member.age == 40
    assert member.id == 7
    assert member.nickname == "ada"
    assert member.settings == Settings(volume=3, theme="dark", language="en")
    assert base.create().active is True
    assert variant1.create().age == 30


def test_union_variant_switch_at_call_site() -> None:
    canvases = ff.define(Canvas, shape={"circle": {"radius": 10.0}})

    switched = canvases.create({"shape": {"rectangle": {"width": 20.0, "height": 30.0}}})

    assert switched.shape == Rectangle(width=20.0, height=30.0)
    assert canvases.create().shape == Circle(radius=10.0)


def test_same_union_tag_merges_partially() -> None:
    canvases = ff.define(Canvas, shape={"rectangle": {"width": 2.0, "height": 3.0}})

    canvas = canvases.create(shape={"rectangle": {"height": 9.0}})

    assert canvas.shape == Rectangle(width=2.0, height=9.0)


def test_partial_nested_override_preserves_base_siblings() -> None:
    members = ff.define(
        Member,
        id=1,
        settings={"volume": 8, "theme": "dark", "language": "fr"},
    )

    member = members.create(settings={"volume": 1})

    assert member.settings == Settings(volume=1, theme="dark", language="fr")


def test_unknown_field_is_rejected_at_registration() -> None:
    with pytest.raises(ff.SchemaMismatchError) as exc_info:
        ff.define(Member, id=1, typo_field=1)

    message = str(exc_info.value)
    assert "typo_field" in message
    assert "Member" in message


def test_validate_reports_unknown_field_without_raising() -> None:
    result = ff.validate_description(ff.define_schema(Member), {"typo_field": 1})

    assert not result.is_valid
    assert "typo_field" in result.issues[0].message
    assert "Member" in result.issues[0].message


@pytest.mark.parametrize(
    "shape",
    [{}, {"circle": {"radius": 1.0}, "rectangle": {"width": 1.0, "height": 1.0}}],
)
def test_union_needs_exactly_one_tag(shape: dict[str, object]) -> None:
    with pytest.raises(ff.SchemaMismatchError):
        ff.define(Canvas, shape=shape)


def test_array_arity_names_both_lengths() -> None:
    with pytest.raises(ff.ArityMismatchError) as exc_info:
        ff.define(Level, enemies=[{"kind": "orc"}, {"kind": "orc"}])

    message = str(exc_info.value)
    assert "3" in message
    assert "2" in message


def test_missing_value_names_field_and_type() -> None:
    with pytest.raises(ff.MissingValueError) as exc_info:
        ff.define(Order, user_id=1)

    message = str(exc_info.value)
    assert "product_id" in message
    assert "Order" in message


def test_sequences_and_associations_together() -> None:
    users = ff.define(User, {"name": ff.sequence_format("user{n}")}, id=ff.sequence())
    orders = ff.define(
        Checkout,
        user=ff.association(users),
        product={"id": 10, "seller_id": 1},
        order={"user_id": 0, "product_id": 10},
    )

    first = orders.create()
    second = orders.create()

    assert (first.user.id, first.user.name) == (1, "user1")
    assert (second.user.id, second.user.name) == (2, "user2")

    ff.reset_sequences()
    assert orders.create().user.id == 1
