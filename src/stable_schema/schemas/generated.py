"""Output contract of the versioned-schema compiler.

- GeneratedFamily: Declarations synthesized for one validated family
- CompilationResult: Outcome of one compilation pass

CompilationResult is all-or-nothing: when any diagnostic is present,
``generated`` is empty. Partial code generation is never emitted.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stable_schema.schemas.declarations import ModuleDecl, ValueDecl
from stable_schema.schemas.diagnostics import Diagnostic
from stable_schema.schemas.family import SchemaFamily


class GeneratedFamily(BaseModel):
    """Declarations generated for one family.

    Attributes:
        family: Dotted family name.
        container_path: Path of the container the declarations belong to.
        latest_version: Number of the version the Latest alias binds to.
        latest_module: ``Latest`` module aliasing the highest version's types.
        operations: ``serialize`` / ``deserialize_opt`` signatures.
        decode_order: Version numbers in the order decoders are tried.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    family: str = Field(..., min_length=1, description="Dotted family name")
    container_path: tuple[str, ...] = Field(..., min_length=1, description="Container path")
    latest_version: int = Field(..., ge=1, description="Version bound to Latest")
    latest_module: ModuleDecl = Field(..., description="Generated Latest alias module")
    operations: tuple[ValueDecl, ...] = Field(..., min_length=2, description="Generated operations")
    decode_order: tuple[int, ...] = Field(..., min_length=1, description="Decoder trial order")


class CompilationResult(BaseModel):
    """Outcome of compiling one unit.

    Attributes:
        unit_name: Name of the compilation unit.
        passed: True when no diagnostics were produced.
        families: Every family that built successfully.
        generated: Generated declarations (empty unless ``passed``).
        diagnostics: All fatal findings, deterministically ordered.
        duration_ms: Wall time of the pass.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_name: str = Field(..., min_length=1)
    passed: bool = Field(..., description="True if no diagnostics")
    families: tuple[SchemaFamily, ...] = Field(default=())
    generated: tuple[GeneratedFamily, ...] = Field(default=())
    diagnostics: tuple[Diagnostic, ...] = Field(default=())
    duration_ms: float = Field(default=0.0, ge=0.0)

    @model_validator(mode="after")
    def _check_all_or_nothing(self) -> CompilationResult:
        if self.passed == bool(self.diagnostics):
            raise ValueError("'passed' must be True exactly when there are no diagnostics")
        if self.diagnostics and self.generated:
            raise ValueError("a failed compilation must not carry generated declarations")
        return self


__all__ = ["CompilationResult", "GeneratedFamily"]
