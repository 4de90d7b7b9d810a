"""ReferenceValidator: runs every stability rule against one reference index.

ReferenceValidator coordinates the rule validators and merges their findings
into a single, deterministically ordered diagnostic list. It is stateless and
read-only over the index and the families: the caller owns the returned list.

Example:
    >>> from stable_schema.enforcement import ReferenceIndex, ReferenceValidator
    >>> index = ReferenceIndex.from_unit(unit)
    >>> diagnostics = ReferenceValidator().validate(index)
    >>> for d in diagnostics:
    ...     print(d.format())
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from stable_schema.enforcement.reference_index import ReferenceIndex
from stable_schema.enforcement.validators.functor_families import FunctorFamilyValidator
from stable_schema.enforcement.validators.version_leakage import VersionLeakageValidator
from stable_schema.enforcement.validators.versioned_types import AllTheWayDownValidator
from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import CompilationUnit
from stable_schema.schemas.diagnostics import Diagnostic, count_by_code, sort_diagnostics
from stable_schema.schemas.family import SchemaFamily

logger = structlog.get_logger(__name__)


class ReferenceValidator:
    """Applies the all-the-way-down, functor and leakage rules.

    Example:
        >>> validator = ReferenceValidator()
        >>> diagnostics = validator.validate(index, families)
        >>> assert not diagnostics, "unit violates the stability rules"
    """

    def __init__(self) -> None:
        self._log = logger.bind(component="ReferenceValidator")
        self._all_the_way_down = AllTheWayDownValidator()
        self._functor_families = FunctorFamilyValidator()
        self._version_leakage = VersionLeakageValidator()

    def validate(
        self,
        index: ReferenceIndex,
        families: Iterable[SchemaFamily] = (),
    ) -> list[Diagnostic]:
        """Validate every reference and family of a compilation pass.

        Args:
            index: Reference index of the unit.
            families: Built families; containers already in the index are
                not checked twice.

        Returns:
            Sorted diagnostics, empty when the unit is compliant.
        """
        diagnostics: list[Diagnostic] = []
        diagnostics.extend(self._all_the_way_down.validate(index))
        diagnostics.extend(self._functor_families.validate(index.declarations, families))
        diagnostics.extend(self._version_leakage.validate(index))
        ordered = sort_diagnostics(diagnostics)

        self._log.info(
            "reference_validation_completed",
            references=len(index.references),
            families=len(index.declarations),
            diagnostics=len(ordered),
            by_code=count_by_code(ordered),
        )
        return ordered


def validate(
    program_references: ReferenceIndex | CompilationUnit,
    families: Iterable[SchemaFamily] = (),
    config: CompilerConfig | None = None,
) -> list[Diagnostic]:
    """Validate a unit (or its prebuilt index) against the stability rules.

    Args:
        program_references: The reference index, or a unit to index.
        families: Built families to check in addition to the indexed ones.
        config: Naming conventions used when indexing a unit.

    Returns:
        Sorted diagnostics, empty when compliant.
    """
    if isinstance(program_references, CompilationUnit):
        program_references = ReferenceIndex.from_unit(program_references, config)
    return ReferenceValidator().validate(program_references, families)


__all__ = ["ReferenceValidator", "validate"]
