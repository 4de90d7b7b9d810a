"""VersionLeakageValidator: only Latest may be named outside version modules.

A reference that resolves to a specific version (``Account.Stable.V2.t`` or
the module ``Account.Stable.V2``) is allowed only inside a version module of
some family. A family's own Latest alias module may also name that family's
versions. Everywhere else it is a SpecificVersionLeak: value signatures,
functor parameters, functor application arguments, plain type definitions.

The ``unversioned`` use-site annotation does not silence this rule.
"""

from __future__ import annotations

import structlog

from stable_schema.enforcement.reference_index import (
    DeclarationKind,
    ReferenceContextKind,
    ReferenceIndex,
    Resolution,
    TypeReference,
)
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode
from stable_schema.schemas.family import parse_version_module_name

logger = structlog.get_logger(__name__)

_EXEMPT_CONTEXTS = frozenset({ReferenceContextKind.VERSION, ReferenceContextKind.TEST})


class VersionLeakageValidator:
    """Flags specific-version references outside version definitions."""

    def __init__(self) -> None:
        self._log = logger.bind(component="VersionLeakageValidator")

    def validate(self, index: ReferenceIndex) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for reference in index.references:
            context = reference.context
            if context.kind in _EXEMPT_CONTEXTS:
                continue
            resolution = index.resolve(reference)
            if resolution.kind is not DeclarationKind.VERSION:
                continue
            if (
                context.kind is ReferenceContextKind.LATEST_ALIAS
                and resolution.family == context.family
            ):
                continue
            diagnostics.append(self._violation(index, reference, resolution))

        self._log.debug("version_leakage_checked", violations=len(diagnostics))
        return diagnostics

    def _violation(
        self,
        index: ReferenceIndex,
        reference: TypeReference,
        resolution: Resolution,
    ) -> Diagnostic:
        where = {
            ReferenceContextKind.FUNCTOR_BODY: "a functor body",
            ReferenceContextKind.LATEST_ALIAS: "another family's Latest alias",
        }.get(reference.context.kind, "ordinary code")
        what = "module" if reference.is_module else "type"
        replacement = latest_path(
            _written_or_resolved(reference, resolution), index.config.latest_name
        )
        return Diagnostic(
            code=DiagnosticCode.SPECIFIC_VERSION_LEAK,
            message=(
                f"{what} '{reference.dotted}' names version V{resolution.version} of "
                f"'{resolution.family}' in {where}"
            ),
            subject=reference.owner,
            location=reference.location,
            suggestion=f"Use '{replacement}' instead",
        )


def _written_or_resolved(reference: TypeReference, resolution: Resolution) -> tuple[str, ...]:
    """The path as written, or the resolved target when an alias hides the version."""
    if any(parse_version_module_name(c) is not None for c in reference.path):
        return reference.path
    return resolution.target


def latest_path(path: tuple[str, ...], latest_name: str = "Latest") -> str:
    """Rewrite the first ``V<k>`` component of a path to the Latest alias.

    Example:
        >>> latest_path(("Account", "Stable", "V2", "t"))
        'Account.Stable.Latest.t'
    """
    rewritten = list(path)
    for i, component in enumerate(rewritten):
        if parse_version_module_name(component) is not None:
            rewritten[i] = latest_name
            break
    return ".".join(rewritten)


__all__ = ["VersionLeakageValidator", "latest_path"]
