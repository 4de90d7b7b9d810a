"""stable-schema: versioned-schema compiler.

Keeps a named data type decodable forever by organizing it as an ordered
family of immutable versions, each with its own codec and a direct upgrade
to the newest (Latest) version.

- compilation: builder, synthesizer and the compile pipeline
- enforcement: whole-program reference index and stability rules
- runtime: codecs and the serialize/deserialize_opt dispatcher
- schemas: declaration model, families, diagnostics, config

Example:
    >>> from stable_schema import compile_unit
    >>> result = compile_unit(unit)
    >>> result.passed
    True
"""

from __future__ import annotations

from stable_schema.compilation import (
    SchemaCompilationError,
    analyze_unit,
    build_family,
    build_rpc,
    compile_path,
    compile_unit,
    discover_families,
    load_unit,
    synthesize,
)
from stable_schema.enforcement import ReferenceIndex, validate
from stable_schema.runtime import (
    DecodeError,
    OfBinable,
    OfStringable,
    PydanticCodec,
    VersionBinding,
    VersionedCodec,
    bind_family,
    bind_rpc,
)
from stable_schema.schemas import (
    CompilationUnit,
    CompilerConfig,
    Diagnostic,
    DiagnosticCode,
    SchemaFamily,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Compilation
    "SchemaCompilationError",
    "analyze_unit",
    "build_family",
    "build_rpc",
    "compile_path",
    "compile_unit",
    "discover_families",
    "load_unit",
    "synthesize",
    # Enforcement
    "ReferenceIndex",
    "validate",
    # Runtime
    "DecodeError",
    "OfBinable",
    "OfStringable",
    "PydanticCodec",
    "VersionBinding",
    "VersionedCodec",
    "bind_family",
    "bind_rpc",
    # Models
    "CompilationUnit",
    "CompilerConfig",
    "Diagnostic",
    "DiagnosticCode",
    "SchemaFamily",
]
