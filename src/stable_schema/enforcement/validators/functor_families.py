"""FunctorFamilyValidator: families may not vary per functor instantiation.

A family declared anywhere inside the body of a functor with at least one
parameter would have a different wire format per argument. Zero-argument
functors are exempt, as are families declared inside test declarations.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from stable_schema.compilation.builder import FamilyDeclaration
from stable_schema.schemas.declarations import SourceLocation
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode
from stable_schema.schemas.family import SchemaFamily

logger = structlog.get_logger(__name__)


class FunctorFamilyValidator:
    """Rejects families declared inside parameterised functor bodies."""

    def __init__(self) -> None:
        self._log = logger.bind(component="FunctorFamilyValidator")

    def validate(
        self,
        declarations: Iterable[FamilyDeclaration],
        families: Iterable[SchemaFamily] = (),
    ) -> list[Diagnostic]:
        """Check every discovered container and built family once.

        Args:
            declarations: Containers found in the unit (built or not).
            families: Built families, possibly from other units.

        Returns:
            One diagnostic per offending family.
        """
        diagnostics: list[Diagnostic] = []
        seen: set[tuple[str, ...]] = set()

        for declaration in declarations:
            seen.add(declaration.container_path)
            if declaration.in_test:
                continue
            diagnostic = self._check(
                declaration.name, declaration.functor_arities, declaration.container.location
            )
            if diagnostic is not None:
                diagnostics.append(diagnostic)

        for family in families:
            if family.container_path in seen or family.in_test:
                continue
            seen.add(family.container_path)
            diagnostic = self._check(family.name, family.functor_arities, family.location)
            if diagnostic is not None:
                diagnostics.append(diagnostic)

        self._log.debug("functor_families_checked", violations=len(diagnostics))
        return diagnostics

    def _check(
        self,
        name: str,
        arities: tuple[int, ...],
        location: SourceLocation | None,
    ) -> Diagnostic | None:
        parameterised = [a for a in arities if a > 0]
        if not parameterised:
            return None
        return Diagnostic(
            code=DiagnosticCode.FUNCTOR_PARAMETERIZED_FAMILY,
            message=(
                f"family '{name}' is declared inside a functor body of arity "
                f"{max(parameterised)}; its serialized form would differ per instantiation"
            ),
            subject=name,
            location=location,
            suggestion="Move the family out of the functor, or make the functor take no parameters",
        )


__all__ = ["FunctorFamilyValidator"]
