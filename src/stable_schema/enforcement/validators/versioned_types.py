"""AllTheWayDownValidator: versioned data is built only from stable types.

Every type named inside a version's type definition must be one of:

- a built-in primitive or parameterised built-in (arguments are checked too)
- the Latest alias of a family, directly or through a plain alias chain
- a type declared, or used, with the ``unversioned`` escape annotation
- a type declared inside a version module (a sibling helper type, or a
  specific version of some family, which the leakage rule permits there)

Type variables are not references and are never flagged.
"""

from __future__ import annotations

import structlog

from stable_schema.enforcement.reference_index import (
    DeclarationKind,
    ReferenceContextKind,
    ReferenceIndex,
    TypeReference,
)
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode

logger = structlog.get_logger(__name__)

_STABLE_KINDS = frozenset(
    {
        DeclarationKind.BUILTIN,
        DeclarationKind.LATEST,
        DeclarationKind.UNVERSIONED,
        DeclarationKind.VERSION,
    }
)

_REASONS: dict[DeclarationKind, str] = {
    DeclarationKind.PLAIN: "is an ordinary type with no version family",
    DeclarationKind.TEST: "is declared in a test and has no stable serialized form",
    DeclarationKind.UNKNOWN: "is neither a built-in nor a declared stable type",
}


class AllTheWayDownValidator:
    """Checks version type definitions against the stable-type universe."""

    def __init__(self) -> None:
        self._log = logger.bind(component="AllTheWayDownValidator")

    def validate(self, index: ReferenceIndex) -> list[Diagnostic]:
        """Return one diagnostic per non-stable reference in a version definition."""
        diagnostics: list[Diagnostic] = []
        for reference in index.in_context(ReferenceContextKind.VERSION):
            if not reference.definition or reference.exempt:
                continue
            resolution = index.resolve(reference)
            if resolution.kind in _STABLE_KINDS:
                continue
            diagnostics.append(self._violation(index, reference, resolution.kind))

        self._log.debug("all_the_way_down_checked", violations=len(diagnostics))
        return diagnostics

    def _violation(
        self,
        index: ReferenceIndex,
        reference: TypeReference,
        kind: DeclarationKind,
    ) -> Diagnostic:
        context = reference.context
        return Diagnostic(
            code=DiagnosticCode.NOT_VERSIONED_ALL_THE_WAY_DOWN,
            message=(
                f"'{reference.dotted}' used in {context.family}.V{context.version} "
                f"{_REASONS.get(kind, 'is not a stable type')}"
            ),
            subject=reference.owner,
            location=reference.location,
            suggestion=(
                f"Use a built-in, another family's "
                f"'{index.config.container_name}.{index.config.latest_name}' type, "
                f"or mark the type [@unversioned] if it is never persisted"
            ),
        )


__all__ = ["AllTheWayDownValidator"]
