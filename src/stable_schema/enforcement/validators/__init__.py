"""Validators for the stability rules.

- AllTheWayDownValidator: version definitions use only stable types
- FunctorFamilyValidator: no families inside parameterised functor bodies
- VersionLeakageValidator: only Latest is named outside version modules

Each validator reads one ReferenceIndex and returns diagnostics. References
in test declarations are never reported.
"""

from __future__ import annotations

from stable_schema.enforcement.validators.functor_families import FunctorFamilyValidator
from stable_schema.enforcement.validators.version_leakage import (
    VersionLeakageValidator,
    latest_path,
)
from stable_schema.enforcement.validators.versioned_types import AllTheWayDownValidator

__all__: list[str] = [
    "AllTheWayDownValidator",
    "FunctorFamilyValidator",
    "VersionLeakageValidator",
    "latest_path",
]
