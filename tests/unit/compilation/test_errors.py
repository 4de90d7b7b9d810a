"""Unit tests for compilation error types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from stable_schema.compilation.errors import (
    ERROR_CODES,
    CompilationError,
    CompilationException,
    SchemaCompilationError,
)
from stable_schema.compilation.stages import CompilationStage
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode


def _diagnostic(subject: str) -> Diagnostic:
    return Diagnostic(code=DiagnosticCode.EMPTY_FAMILY, message="no versions", subject=subject)


class TestCompilationError:
    """Tests for CompilationError."""

    @pytest.mark.requirement("ER-001")
    def test_format(self) -> None:
        """format() renders stage, code, message and suggestion."""
        error = CompilationError(
            stage=CompilationStage.LOAD,
            code="E001",
            message="File not found: ledger.yaml",
            suggestion="Check the path",
        )
        assert error.format() == "[LOAD] E001: File not found: ledger.yaml\nSuggestion: Check the path"
        assert error.format(include_suggestion=False) == "[LOAD] E001: File not found: ledger.yaml"

    @pytest.mark.requirement("ER-001")
    def test_code_pattern(self) -> None:
        """Codes must look like E###."""
        with pytest.raises(ValidationError):
            CompilationError(stage=CompilationStage.LOAD, code="X1", message="bad")

    @pytest.mark.requirement("ER-001")
    def test_exception_wraps_error(self) -> None:
        """CompilationException exposes the code and a one-line message."""
        error = CompilationError(
            stage=CompilationStage.LOAD, code="E002", message="Invalid YAML", suggestion="Fix it"
        )
        exc = CompilationException(error)

        assert exc.code == "E002"
        assert str(exc) == "[LOAD] E002: Invalid YAML"

    @pytest.mark.requirement("ER-001")
    def test_error_codes_documented(self) -> None:
        """Every LOAD error code has a description."""
        assert set(ERROR_CODES) == {"E001", "E002", "E003"}


class TestSchemaCompilationError:
    """Tests for SchemaCompilationError."""

    @pytest.mark.requirement("ER-002")
    def test_single_diagnostic(self) -> None:
        """The message lists the diagnostic."""
        error = SchemaCompilationError([_diagnostic("Account")])

        message = str(error)
        assert message.startswith("Schema compilation failed with 1 diagnostic:")
        assert "[EmptyFamily] Account: no versions" in message
        assert repr(error) == "SchemaCompilationError(diagnostics=1)"

    @pytest.mark.requirement("ER-002")
    def test_long_lists_are_truncated(self) -> None:
        """Only the first five diagnostics are shown."""
        error = SchemaCompilationError([_diagnostic(f"Family{i}") for i in range(8)])

        message = str(error)
        assert "Family4" in message
        assert "Family5" not in message
        assert message.endswith("... and 3 more")
        assert len(error.diagnostics) == 8

    @pytest.mark.requirement("ER-002")
    def test_custom_message(self) -> None:
        """A custom message replaces the generated one."""
        error = SchemaCompilationError([_diagnostic("Account")], message="stop")
        assert str(error) == "stop"
