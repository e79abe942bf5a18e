"""Shared fixtures: every test starts with fresh sequence counters and no fixtures directory."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from fixture_forge.resolvers import reset_sequences
from fixture_forge.sources import set_fixtures_dir


@pytest.fixture(autouse=True)
def _reset_construction_state() -> Iterator[None]:
    reset_sequences(start=1)
    set_fixtures_dir(None)
    yield
    reset_sequences(start=1)
    set_fixtures_dir(None)
