"""
fixture-forge: structured definition errors.

File: src/fixture_forge/errors.py

Purpose
- Define the issue record and exception hierarchy used by validation, coercion,
  and template registration.

Functional requirements
- Every static problem is reported as an ``Issue`` with a dotted field path.
- Validation collects all issues before raising, so one failure lists every typo.
- The raised exception type names the issue kind when all issues share one kind.

Non-functional requirements
- Messages are deterministic and name the offending key and target type.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

PathPart = str | int
FieldPath = tuple[PathPart, ...]

_ROOT_PATH: Final[str] = "<root>"


class IssueKind(StrEnum):
    """Category of a static description problem."""

    SCHEMA_MISMATCH = "schema_mismatch"
    UNION_TAG = "union_tag"
    ARITY_MISMATCH = "arity_mismatch"
    MISSING_VALUE = "missing_value"
    SCALAR_MISMATCH = "scalar_mismatch"


@dataclass(frozen=True, slots=True)
class Issue:
    """Single structured description failure."""

    kind: IssueKind
    path: str
    message: str

    def render(self) -> str:
        return f"- {self.path or _ROOT_PATH}: {self.message}"


class IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[Issue] = []

    def add(self, kind: IssueKind, path: FieldPath | str, message: str) -> None:
        rendered = path if isinstance(path, str) else render_path(path)
        self._items.append(Issue(kind=kind, path=rendered, message=message))

    def extend(self, issues: Iterable[Issue]) -> None:
        self._items.extend(issues)

    def items(self) -> tuple[Issue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


class FixtureDefinitionError(ValueError):
    """Raised when a description cannot produce an instance of its target type."""

    def __init__(self, issues: Sequence[Issue], *, target: str | None = None) -> None:
        self.issues = tuple(issues)
        self.target = target
        if not self.issues:
            rendered = "unknown description failure"
        else:
            rendered = "\n".join(issue.render() for issue in self.issues)
        subject = f"type {target!r}" if target else "fixture description"
        super().__init__(f"invalid description for {subject}:\n{rendered}")

    @property
    def kinds(self) -> frozenset[IssueKind]:
        return frozenset(issue.kind for issue in self.issues)


class SchemaMismatchError(FixtureDefinitionError):
    """A description names a field or union variant the target type does not have."""


class ArityMismatchError(FixtureDefinitionError):
    """A fixed-size array description has the wrong number of elements."""


class MissingValueError(FixtureDefinitionError):
    """No layer and no type-level default supplies a required field."""


class ScalarMismatchError(FixtureDefinitionError):
    """A value cannot be converted to the declared field type without loss."""


class ResolverError(RuntimeError):
    """Raised when a dynamic-value resolver fails during construction."""


class DescriptionLoadError(ValueError):
    """Raised when a description file cannot be read or parsed."""


_ERROR_BY_KIND: Final[dict[IssueKind, type[FixtureDefinitionError]]] = {
    IssueKind.SCHEMA_MISMATCH: SchemaMismatchError,
    IssueKind.UNION_TAG: SchemaMismatchError,
    IssueKind.ARITY_MISMATCH: ArityMismatchError,
    IssueKind.MISSING_VALUE: MissingValueError,
    IssueKind.SCALAR_MISMATCH: ScalarMismatchError,
}


def error_for(issues: Sequence[Issue], *, target: str | None = None) -> FixtureDefinitionError:
    """Return the most specific error class covering every issue."""

    classes = {_ERROR_BY_KIND[issue.kind] for issue in issues}
    error_cls = classes.pop() if len(classes) == 1 else FixtureDefinitionError
    return error_cls(issues, target=target)


def raise_for_issues(issues: Sequence[Issue], *, target: str | None = None) -> None:
    if issues:
        raise error_for(issues, target=target)


def render_path(path: FieldPath) -> str:
    """Render ``("enemies", 1, "pos")`` as ``enemies[1].pos``."""

    rendered = ""
    for part in path:
        if isinstance(part, int):
            rendered += f"[{part}]"
        elif rendered:
            rendered += f".{part}"
        else:
            rendered = str(part)
    return rendered


__all__ = [
    "ArityMismatchError",
    "DescriptionLoadError",
    "FieldPath",
    "FixtureDefinitionError",
    "Issue",
    "IssueCollector",
    "IssueKind",
    "MissingValueError",
    "PathPart",
    "ResolverError",
    "ScalarMismatchError",
    "SchemaMismatchError",
    "error_for",
    "raise_for_issues",
    "render_path",
]
