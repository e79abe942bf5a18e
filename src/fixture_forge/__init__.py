"""
fixture-forge: typed test-data construction.

File: src/fixture_forge/__init__.py

Purpose
- Package root. Re-exports the public API for registering dataclass templates,
  deriving variants and building instances.

Functional requirements
- Must not have side effects at import time (no settings loading, no logging init).
"""

from fixture_forge.coercion import check_value, coerce_value
from fixture_forge.engine import Template, define, define_from
from fixture_forge.errors import (
    ArityMismatchError,
    DescriptionLoadError,
    FixtureDefinitionError,
    Issue,
    IssueKind,
    MissingValueError,
    ResolverError,
    ScalarMismatchError,
    SchemaMismatchError,
)
from fixture_forge.markers import (
    Generated,
    association,
    is_generated,
    lazy,
    lazy_with_context,
    sequence,
    sequence_format,
)
from fixture_forge.merge import merge_descriptions, merge_layers
from fixture_forge.reflection import FixedLength, Schema, define_schema, fields_of, shape_of
from fixture_forge.resolvers import (
    DefaultResolver,
    ResolutionRequest,
    Resolver,
    SequenceRegistry,
    reset_sequences,
)
from fixture_forge.sources import load_description, load_descriptions
from fixture_forge.validation import (
    ValidationResult,
    assert_valid_description,
    validate_description,
)

__version__ = "0.1.0"

__all__ = [
    "ArityMismatchError",
    "DefaultResolver",
    "DescriptionLoadError",
    "FixedLength",
    "FixtureDefinitionError",
    "Generated",
    "Issue",
    "IssueKind",
    "MissingValueError",
    "ResolutionRequest",
    "Resolver",
    "ResolverError",
    "ScalarMismatchError",
    "Schema",
    "SchemaMismatchError",
    "SequenceRegistry",
    "Template",
    "ValidationResult",
    "__version__",
    "assert_valid_description",
    "association",
    "check_value",
    "coerce_value",
    "define",
    "define_from",
    "define_schema",
    "fields_of",
    "is_generated",
    "lazy",
    "lazy_with_context",
    "load_description",
    "load_descriptions",
    "merge_descriptions",
    "merge_layers",
    "reset_sequences",
    "sequence",
    "sequence_format",
    "shape_of",
    "validate_description",
]
