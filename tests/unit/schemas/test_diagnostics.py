"""Unit tests for Diagnostic models and helpers."""

from __future__ import annotations

import pytest

from stable_schema.schemas.declarations import SourceLocation
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode


def _diagnostic(code: DiagnosticCode, line: int | None, subject: str = "Account") -> Diagnostic:
    return Diagnostic(
        code=code,
        message="problem",
        subject=subject,
        location=SourceLocation(file="ledger.ml", line=line) if line is not None else None,
    )


class TestDiagnosticCode:
    """Tests for DiagnosticCode."""

    @pytest.mark.requirement("DG-001")
    def test_stable_code_values(self) -> None:
        """Codes render as their stable CamelCase names."""
        assert DiagnosticCode.NON_CONTIGUOUS_VERSIONS.value == "NonContiguousVersions"
        assert DiagnosticCode.FUNCTOR_PARAMETERIZED_FAMILY.value == "FunctorParameterizedFamily"
        assert DiagnosticCode.SPECIFIC_VERSION_LEAK.value == "SpecificVersionLeak"

    @pytest.mark.requirement("DG-001")
    def test_every_code_has_description(self) -> None:
        """Every code has a non-empty, unique description."""
        descriptions = [code.description for code in DiagnosticCode]
        assert all(descriptions)
        assert len(set(descriptions)) == len(descriptions)


class TestDiagnostic:
    """Tests for Diagnostic."""

    @pytest.mark.requirement("DG-002")
    def test_format_with_location_and_suggestion(self) -> None:
        """format() renders location, code, subject, message and suggestion."""
        diagnostic = Diagnostic(
            code=DiagnosticCode.SPECIFIC_VERSION_LEAK,
            message="names V1",
            subject="Ledger.post",
            location=SourceLocation(file="ledger.ml", line=12, column=4),
            suggestion="Use 'Account.Stable.Latest.t' instead",
        )
        assert diagnostic.format() == (
            "ledger.ml:12:4: [SpecificVersionLeak] Ledger.post: names V1\n"
            "  Suggestion: Use 'Account.Stable.Latest.t' instead"
        )
        assert "Suggestion" not in diagnostic.format(include_suggestion=False)

    @pytest.mark.requirement("DG-002")
    def test_format_without_location(self) -> None:
        """Missing locations render as <unknown>."""
        diagnostic = _diagnostic(DiagnosticCode.EMPTY_FAMILY, None)
        assert diagnostic.format().startswith("<unknown>: [EmptyFamily] Account: problem")

    @pytest.mark.requirement("DG-002")
    def test_always_fatal(self) -> None:
        """Severity is always fatal."""
        assert _diagnostic(DiagnosticCode.EMPTY_FAMILY, 1).severity == "fatal"


class TestHelpers:
    """Tests for sort_diagnostics and count_by_code."""

    @pytest.mark.requirement("DG-003")
    def test_sort_is_by_location_then_code(self) -> None:
        """Unlocated first, then by line, then by code."""
        from stable_schema.schemas.diagnostics import sort_diagnostics

        diagnostics = [
            _diagnostic(DiagnosticCode.SPECIFIC_VERSION_LEAK, 9),
            _diagnostic(DiagnosticCode.EMPTY_FAMILY, 3),
            _diagnostic(DiagnosticCode.MISSING_UPGRADE_FUNCTION, None),
            _diagnostic(DiagnosticCode.EMPTY_FAMILY, 9),
        ]
        ordered = sort_diagnostics(diagnostics)
        assert [(d.location.line if d.location else None, d.code.value) for d in ordered] == [
            (None, "MissingUpgradeFunction"),
            (3, "EmptyFamily"),
            (9, "EmptyFamily"),
            (9, "SpecificVersionLeak"),
        ]

    @pytest.mark.requirement("DG-003")
    def test_count_by_code(self) -> None:
        """count_by_code tallies per code value."""
        from stable_schema.schemas.diagnostics import count_by_code

        counts = count_by_code(
            [
                _diagnostic(DiagnosticCode.SPECIFIC_VERSION_LEAK, 1),
                _diagnostic(DiagnosticCode.SPECIFIC_VERSION_LEAK, 2),
                _diagnostic(DiagnosticCode.EMPTY_FAMILY, 3),
            ]
        )
        assert counts == {"SpecificVersionLeak": 2, "EmptyFamily": 1}
