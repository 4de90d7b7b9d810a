"""Compilation stages for the versioned-schema compiler.

One compilation pass turns a declaration tree into generated declarations:

    1. LOAD: Parse YAML/JSON files into the declaration model
    2. BUILD: Group version modules into validated SchemaFamily values
    3. VALIDATE: Check every reference against the stability rules
    4. SYNTHESIZE: Generate Latest aliases and serialize/deserialize_opt

BUILD and VALIDATE both always run so a single pass reports every problem.
SYNTHESIZE runs only when there are no diagnostics at all: a unit is either
fully valid or produces nothing.

Each stage is wrapped in an OpenTelemetry span (``schema.compile`` is the
parent of ``schema.build``, ``schema.validate`` and ``schema.synthesize``).
"""

from __future__ import annotations

import time
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from stable_schema.telemetry.tracing import create_span

if TYPE_CHECKING:
    from stable_schema.schemas.config import CompilerConfig
    from stable_schema.schemas.declarations import CompilationUnit
    from stable_schema.schemas.generated import CompilationResult

logger = structlog.get_logger(__name__)


class CompilationStage(str, Enum):
    """Stage in the compilation pipeline.

    Example:
        >>> CompilationStage.BUILD.value
        'BUILD'
        >>> CompilationStage.VALIDATE.description
        'Check references against the stability rules'
    """

    LOAD = "LOAD"
    """Parse YAML/JSON files into the declaration model."""

    BUILD = "BUILD"
    """Group version modules into families."""

    VALIDATE = "VALIDATE"
    """Whole-program reference validation."""

    SYNTHESIZE = "SYNTHESIZE"
    """Generate Latest aliases and dispatcher declarations."""

    @property
    def description(self) -> str:
        descriptions = {
            CompilationStage.LOAD: "Parse declaration files into the declaration model",
            CompilationStage.BUILD: "Group version modules into validated families",
            CompilationStage.VALIDATE: "Check references against the stability rules",
            CompilationStage.SYNTHESIZE: "Generate Latest aliases and dispatchers",
        }
        return descriptions[self]


def analyze_unit(unit: CompilationUnit, config: CompilerConfig | None = None) -> CompilationResult:
    """Run BUILD, VALIDATE and SYNTHESIZE over a unit without raising.

    Args:
        unit: The declaration tree.
        config: Naming conventions (defaults apply when None).

    Returns:
        CompilationResult; ``passed`` is False and ``generated`` empty when
        any diagnostic was produced.
    """
    # Local imports to avoid circular dependency (enforcement -> builder -> compilation)
    from stable_schema.compilation.builder import discover_families
    from stable_schema.compilation.rpc import builder_for
    from stable_schema.compilation.synthesizer import synthesize
    from stable_schema.enforcement.reference_index import ReferenceIndex
    from stable_schema.enforcement.reference_validator import ReferenceValidator
    from stable_schema.schemas.config import CompilerConfig
    from stable_schema.schemas.diagnostics import count_by_code, sort_diagnostics
    from stable_schema.schemas.generated import CompilationResult

    cfg = config or CompilerConfig()
    log = logger.bind(unit=unit.name)
    pipeline_start = time.perf_counter()

    with create_span("schema.compile", attributes={"schema.unit": unit.name}) as compile_span:
        # Stage: BUILD
        stage_start = time.perf_counter()
        with create_span(
            "schema.build",
            attributes={"schema.stage": CompilationStage.BUILD.value},
        ) as span:
            log.info("compilation_stage_start", stage=CompilationStage.BUILD.value)
            declarations = discover_families(unit, cfg)
            families = []
            build_diagnostics = []
            for declaration in declarations:
                built = builder_for(declaration.kind, cfg).build(declaration)
                build_diagnostics.extend(built.diagnostics)
                if built.family is not None:
                    families.append(built.family)
            span.set_attribute("schema.families", len(declarations))
            span.set_attribute("schema.diagnostics", len(build_diagnostics))
            log.info(
                "compilation_stage_complete",
                stage=CompilationStage.BUILD.value,
                families=len(families),
                rejected=len(declarations) - len(families),
                duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
            )

        # Stage: VALIDATE
        stage_start = time.perf_counter()
        with create_span(
            "schema.validate",
            attributes={"schema.stage": CompilationStage.VALIDATE.value},
        ) as span:
            log.info("compilation_stage_start", stage=CompilationStage.VALIDATE.value)
            index = ReferenceIndex.from_unit(unit, cfg, declarations)
            rule_diagnostics = ReferenceValidator().validate(index, families)
            span.set_attribute("schema.references", len(index.references))
            span.set_attribute("schema.diagnostics", len(rule_diagnostics))
            log.info(
                "compilation_stage_complete",
                stage=CompilationStage.VALIDATE.value,
                references=len(index.references),
                diagnostics=len(rule_diagnostics),
                duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
            )

        diagnostics = sort_diagnostics([*build_diagnostics, *rule_diagnostics])

        # Stage: SYNTHESIZE (all or nothing)
        generated = []
        if not diagnostics:
            stage_start = time.perf_counter()
            with create_span(
                "schema.synthesize",
                attributes={"schema.stage": CompilationStage.SYNTHESIZE.value},
            ) as span:
                generated = [synthesize(family, cfg) for family in families]
                span.set_attribute("schema.generated", len(generated))
                log.info(
                    "compilation_stage_complete",
                    stage=CompilationStage.SYNTHESIZE.value,
                    generated=len(generated),
                    duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
                )

        duration_ms = (time.perf_counter() - pipeline_start) * 1000
        compile_span.set_attribute("schema.passed", not diagnostics)
        compile_span.set_attribute("schema.diagnostics", len(diagnostics))

    if diagnostics:
        log.warning(
            "compilation_failed",
            diagnostics=len(diagnostics),
            by_code=count_by_code(diagnostics),
            duration_ms=round(duration_ms, 2),
        )
    else:
        log.info(
            "compilation_complete",
            families=len(families),
            duration_ms=round(duration_ms, 2),
        )

    return CompilationResult(
        unit_name=unit.name,
        passed=not diagnostics,
        families=tuple(families),
        generated=tuple(generated),
        diagnostics=tuple(diagnostics),
        duration_ms=duration_ms,
    )


def compile_unit(unit: CompilationUnit, config: CompilerConfig | None = None) -> CompilationResult:
    """Compile a unit, raising on any diagnostic.

    Args:
        unit: The declaration tree.
        config: Naming conventions (defaults apply when None).

    Returns:
        A passing CompilationResult with generated declarations.

    Raises:
        SchemaCompilationError: If the unit produced any diagnostic.

    Example:
        >>> result = compile_unit(unit)
        >>> [g.family for g in result.generated]
        ['Account']
    """
    from stable_schema.compilation.errors import SchemaCompilationError

    result = analyze_unit(unit, config)
    if not result.passed:
        raise SchemaCompilationError(list(result.diagnostics))
    return result


def compile_path(unit_path: Path, config_path: Path | None = None) -> CompilationResult:
    """Load a declaration file (and optional config file) and compile it.

    Raises:
        CompilationException: If loading fails (stage LOAD).
        SchemaCompilationError: If the unit produced any diagnostic.
    """
    from stable_schema.compilation.loader import load_config, load_unit

    stage_start = time.perf_counter()
    with create_span(
        "schema.load",
        attributes={
            "schema.stage": CompilationStage.LOAD.value,
            "schema.unit_path": str(unit_path),
        },
    ):
        unit = load_unit(unit_path)
        config = load_config(config_path) if config_path is not None else None
        logger.info(
            "compilation_stage_complete",
            stage=CompilationStage.LOAD.value,
            unit=unit.name,
            duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
        )
    return compile_unit(unit, config)


__all__ = ["CompilationStage", "analyze_unit", "compile_path", "compile_unit"]
