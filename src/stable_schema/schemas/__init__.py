"""Pydantic contract models for the versioned-schema compiler.

- declarations: The structural input tree (CompilationUnit, ModuleDecl, ...)
- family: The version graph (SchemaFamily, SchemaVersion, ...)
- diagnostics: Fatal findings (Diagnostic, DiagnosticCode)
- config: Naming conventions and built-in types (CompilerConfig)
- generated: Output contract (GeneratedFamily, CompilationResult)
"""

from __future__ import annotations

from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import (
    CodecRef,
    CompilationUnit,
    Constructor,
    FunctorParameter,
    ModuleDecl,
    RecordField,
    SourceLocation,
    TypeDecl,
    TypeExpr,
    TypeKind,
    ValueDecl,
)
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode
from stable_schema.schemas.family import (
    FamilyKind,
    SchemaFamily,
    SchemaVersion,
    TestObligation,
    UpgradeFunction,
    VersionVariant,
)
from stable_schema.schemas.generated import CompilationResult, GeneratedFamily

__all__: list[str] = [
    # Declarations
    "CodecRef",
    "CompilationUnit",
    "Constructor",
    "FunctorParameter",
    "ModuleDecl",
    "RecordField",
    "SourceLocation",
    "TypeDecl",
    "TypeExpr",
    "TypeKind",
    "ValueDecl",
    # Version graph
    "FamilyKind",
    "SchemaFamily",
    "SchemaVersion",
    "TestObligation",
    "UpgradeFunction",
    "VersionVariant",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCode",
    # Config
    "CompilerConfig",
    # Output
    "CompilationResult",
    "GeneratedFamily",
]
