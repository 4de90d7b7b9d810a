"""Stability rule enforcement for versioned schema declarations.

Builds one whole-program ReferenceIndex per compilation pass and checks it
against the stability rules:

- versioned all the way down
- no families inside parameterised functor bodies
- only Latest is named outside version definitions
- anything goes inside tests

Example:
    >>> from stable_schema.enforcement import validate
    >>> diagnostics = validate(unit)
    >>> if diagnostics:
    ...     for d in diagnostics:
    ...         print(d.format())
"""

from __future__ import annotations

from stable_schema.enforcement.reference_index import (
    DeclarationKind,
    DeclaredType,
    ReferenceContext,
    ReferenceContextKind,
    ReferenceIndex,
    Resolution,
    TypeReference,
)
from stable_schema.enforcement.reference_validator import ReferenceValidator, validate
from stable_schema.enforcement.validators import (
    AllTheWayDownValidator,
    FunctorFamilyValidator,
    VersionLeakageValidator,
    latest_path,
)

__all__: list[str] = [
    # Reference index
    "DeclarationKind",
    "DeclaredType",
    "ReferenceContext",
    "ReferenceContextKind",
    "ReferenceIndex",
    "Resolution",
    "TypeReference",
    # Validators
    "AllTheWayDownValidator",
    "FunctorFamilyValidator",
    "ReferenceValidator",
    "VersionLeakageValidator",
    "latest_path",
    "validate",
]
