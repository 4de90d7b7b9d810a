"""Diagnostic models for the versioned-schema compiler.

A Diagnostic is a single build-halting finding. There is no advisory mode:
every diagnostic is fatal, and one diagnostic anywhere in a compilation unit
suppresses all generated output for that unit.

Diagnostics are values. Builders and validators return lists of them and the
pipeline merges those lists; there is no process-wide collection.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stable_schema.schemas.declarations import SourceLocation


class DiagnosticCode(str, Enum):
    """Stable rule codes reported by the builder and the validator."""

    # Version Graph Builder
    EMPTY_FAMILY = "EmptyFamily"
    NON_CONTIGUOUS_VERSIONS = "NonContiguousVersions"
    MISSING_UPGRADE_FUNCTION = "MissingUpgradeFunction"
    MISSING_TEST_OBLIGATION = "MissingTestObligation"
    UNRECOGNIZED_CODEC_ADAPTER = "UnrecognizedCodecAdapter"
    MISSING_VERSIONED_TYPE = "MissingVersionedType"
    UNEXPECTED_CONTAINER_MEMBER = "UnexpectedContainerMember"
    LATEST_NOT_HIGHEST = "LatestNotHighest"
    MISSING_RPC_ADAPTER = "MissingRpcAdapter"

    # Reference Validator
    NOT_VERSIONED_ALL_THE_WAY_DOWN = "NotVersionedAllTheWayDown"
    FUNCTOR_PARAMETERIZED_FAMILY = "FunctorParameterizedFamily"
    SPECIFIC_VERSION_LEAK = "SpecificVersionLeak"

    @property
    def description(self) -> str:
        """Short explanation of the rule behind this code."""
        return DIAGNOSTIC_DESCRIPTIONS[self]


DIAGNOSTIC_DESCRIPTIONS: dict[DiagnosticCode, str] = {
    DiagnosticCode.EMPTY_FAMILY: "Family container declares no V<n> modules",
    DiagnosticCode.NON_CONTIGUOUS_VERSIONS: "Version numbers must be exactly 1..n",
    DiagnosticCode.MISSING_UPGRADE_FUNCTION: "Non-latest version lacks a direct upgrade to Latest",
    DiagnosticCode.MISSING_TEST_OBLIGATION: "Asserted family lacks its companion test declaration",
    DiagnosticCode.UNRECOGNIZED_CODEC_ADAPTER: "Binable codec is not a recognized adapter",
    DiagnosticCode.MISSING_VERSIONED_TYPE: "Version module does not declare its versioned type",
    DiagnosticCode.UNEXPECTED_CONTAINER_MEMBER: "Family container holds an unexpected module",
    DiagnosticCode.LATEST_NOT_HIGHEST: "Latest alias does not point at the highest version",
    DiagnosticCode.MISSING_RPC_ADAPTER: "RPC version lacks a call-site adapter",
    DiagnosticCode.NOT_VERSIONED_ALL_THE_WAY_DOWN: "Versioned type uses a non-stable type",
    DiagnosticCode.FUNCTOR_PARAMETERIZED_FAMILY: "Family declared inside a parameterized functor",
    DiagnosticCode.SPECIFIC_VERSION_LEAK: "Specific version named outside a version definition",
}


class Diagnostic(BaseModel):
    """A fatal finding from the builder or the validator.

    Attributes:
        code: Stable rule code.
        message: Human-readable description of the problem.
        subject: Dotted path of the offending family or declaration.
        location: Source location of the offending reference or declaration.
        suggestion: Actionable remediation advice.
        severity: Always ``fatal``.

    Example:
        >>> diagnostic = Diagnostic(
        ...     code=DiagnosticCode.SPECIFIC_VERSION_LEAK,
        ...     message="'Account.Stable.V1.t' named outside a version definition",
        ...     subject="Ledger.balance",
        ... )
        >>> print(diagnostic.format())
        <unknown>: [SpecificVersionLeak] Ledger.balance: 'Account.Stable.V1.t' named ...
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: DiagnosticCode = Field(..., description="Stable rule code")
    message: str = Field(..., min_length=1, description="Human-readable message")
    subject: str = Field(..., min_length=1, description="Offending family or declaration")
    location: SourceLocation | None = Field(default=None, description="Source location")
    suggestion: str | None = Field(default=None, description="Actionable remediation advice")
    severity: Literal["fatal"] = Field(default="fatal", description="Always fatal")

    def format(self, include_suggestion: bool = True) -> str:
        """Format the diagnostic for display.

        Args:
            include_suggestion: Whether to include the suggestion line.

        Returns:
            ``location: [Code] subject: message`` plus an optional suggestion line.
        """
        where = str(self.location) if self.location is not None else "<unknown>"
        lines = [f"{where}: [{self.code.value}] {self.subject}: {self.message}"]
        if include_suggestion and self.suggestion:
            lines.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(lines)


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    """Order diagnostics by location, then code, then subject.

    Diagnostics without a location sort first. The order is deterministic so
    repeated runs over the same unit report identically.
    """

    def key(diagnostic: Diagnostic) -> tuple[str, int, int, str, str]:
        loc = diagnostic.location
        if loc is None:
            return ("", 0, 0, diagnostic.code.value, diagnostic.subject)
        return (loc.file, loc.line, loc.column, diagnostic.code.value, diagnostic.subject)

    return sorted(diagnostics, key=key)


def count_by_code(diagnostics: Iterable[Diagnostic]) -> dict[str, int]:
    """Count diagnostics per rule code (used for structured log summaries)."""
    counts: dict[str, int] = {}
    for diagnostic in diagnostics:
        counts[diagnostic.code.value] = counts.get(diagnostic.code.value, 0) + 1
    return counts


__all__ = [
    "DIAGNOSTIC_DESCRIPTIONS",
    "Diagnostic",
    "DiagnosticCode",
    "count_by_code",
    "sort_diagnostics",
]
