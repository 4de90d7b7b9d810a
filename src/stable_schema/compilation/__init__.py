"""Compilation pipeline for versioned schema declarations.

Stages:
    LOAD -> BUILD -> VALIDATE -> SYNTHESIZE

Example:
    >>> from stable_schema.compilation import compile_unit
    >>> result = compile_unit(unit)
    >>> for generated in result.generated:
    ...     print(generated.family, generated.decode_order)
"""

from __future__ import annotations

from stable_schema.compilation.builder import (
    FamilyBuildResult,
    FamilyDeclaration,
    VersionGraphBuilder,
    build_family,
    discover_families,
)
from stable_schema.compilation.errors import (
    ERROR_CODES,
    CompilationError,
    CompilationException,
    SchemaCompilationError,
)
from stable_schema.compilation.loader import load_config, load_unit
from stable_schema.compilation.rpc import RpcFamilyBuilder, build_rpc, builder_for
from stable_schema.compilation.stages import (
    CompilationStage,
    analyze_unit,
    compile_path,
    compile_unit,
)
from stable_schema.compilation.synthesizer import decode_order, operation_names, synthesize

__all__ = [
    # Builder
    "FamilyBuildResult",
    "FamilyDeclaration",
    "RpcFamilyBuilder",
    "VersionGraphBuilder",
    "build_family",
    "build_rpc",
    "builder_for",
    "discover_families",
    # Synthesizer
    "decode_order",
    "operation_names",
    "synthesize",
    # Pipeline
    "CompilationStage",
    "analyze_unit",
    "compile_path",
    "compile_unit",
    # Loading and errors
    "ERROR_CODES",
    "CompilationError",
    "CompilationException",
    "SchemaCompilationError",
    "load_config",
    "load_unit",
]
