"""Error types of the compilation pipeline.

- CompilationError: Structured LOAD-stage error (file, YAML, model validation)
- CompilationException: Exception wrapping a CompilationError
- SchemaCompilationError: Raised when a unit produced diagnostics

Diagnostics from BUILD and VALIDATE are data (Diagnostic models). They only
become an exception at the compile_unit() boundary, where the whole list is
carried by SchemaCompilationError.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from stable_schema.compilation.stages import CompilationStage
from stable_schema.schemas.diagnostics import Diagnostic


class CompilationError(BaseModel):
    """Structured error from the compilation pipeline.

    Attributes:
        stage: Pipeline stage where the error occurred
        code: Error code for programmatic handling (e.g., "E001")
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        context: Optional additional context (file path, field, ...)

    Example:
        >>> error = CompilationError(
        ...     stage=CompilationStage.LOAD,
        ...     code="E001",
        ...     message="File not found: ledger.yaml",
        ... )
        >>> print(error.format())
        [LOAD] E001: File not found: ledger.yaml
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stage: CompilationStage = Field(
        ...,
        description="Pipeline stage where the error occurred",
    )
    code: str = Field(
        ...,
        min_length=1,
        pattern=r"^E\d{3}$",
        description="Error code (E001-E999)",
        examples=["E001", "E002", "E003"],
    )
    message: str = Field(
        ...,
        min_length=1,
        description="Human-readable error message",
    )
    suggestion: str | None = Field(
        default=None,
        description="Actionable suggestion for fixing the error",
    )
    context: dict[str, Any] | None = Field(
        default=None,
        description="Additional context (file path, field, ...)",
    )

    def format(self, include_suggestion: bool = True) -> str:
        """Format the error for display.

        Args:
            include_suggestion: Whether to include the suggestion line.

        Returns:
            Formatted error string for CLI output.
        """
        lines = [f"[{self.stage.value}] {self.code}: {self.message}"]
        if include_suggestion and self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")
        return "\n".join(lines)


class CompilationException(Exception):
    """Exception raised during compilation with structured error details.

    Attributes:
        error: The structured CompilationError with details.
    """

    def __init__(self, error: CompilationError) -> None:
        self.error = error
        super().__init__(error.format(include_suggestion=False))

    @property
    def code(self) -> str:
        return self.error.code


class SchemaCompilationError(Exception):
    """Raised when a compilation unit violates the versioning discipline.

    Attributes:
        diagnostics: Every diagnostic of the unit, in report order.

    Example:
        >>> try:
        ...     compile_unit(unit)
        ... except SchemaCompilationError as e:
        ...     for d in e.diagnostics:
        ...         print(d.format())
    """

    max_shown = 5

    def __init__(self, diagnostics: list[Diagnostic], message: str | None = None) -> None:
        self.diagnostics = diagnostics
        self._custom_message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self._custom_message:
            return self._custom_message

        count = len(self.diagnostics)
        message = f"Schema compilation failed with {count} diagnostic{'s' if count != 1 else ''}:"
        for d in self.diagnostics[: self.max_shown]:
            message += f"\n  {d.format(include_suggestion=False)}"

        if count > self.max_shown:
            remaining = count - self.max_shown
            message += f"\n  ... and {remaining} more"
        return message

    def __str__(self) -> str:
        return self._format_message()

    def __repr__(self) -> str:
        return f"SchemaCompilationError(diagnostics={len(self.diagnostics)})"


# E0xx: LOAD stage errors
ERROR_CODES = {
    "E001": "File not found",
    "E002": "Invalid YAML syntax",
    "E003": "Declaration model validation error",
}


__all__ = [
    "ERROR_CODES",
    "CompilationError",
    "CompilationException",
    "SchemaCompilationError",
]
