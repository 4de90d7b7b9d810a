"""YAML loader for declaration trees and compiler configuration.

- unit file (YAML or JSON) -> CompilationUnit
- config file -> CompilerConfig

The loader handles file reading, YAML parsing and pydantic validation, and
reports failures as CompilationException with stage LOAD:

    E001: File not found
    E002: Invalid YAML syntax
    E003: Declaration model validation error

JSON is a subset of YAML, so both formats go through ``yaml.safe_load``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar, cast

import yaml
from pydantic import BaseModel, ValidationError

from stable_schema.compilation.errors import CompilationError, CompilationException
from stable_schema.compilation.stages import CompilationStage
from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import CompilationUnit
from stable_schema.telemetry.tracing import traced

T = TypeVar("T", bound=BaseModel)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Raises:
        CompilationException: If file not found (E001) or invalid YAML (E002).
    """
    if not path.exists():
        raise CompilationException(
            CompilationError(
                stage=CompilationStage.LOAD,
                code="E001",
                message=f"File not found: {path}",
                suggestion=f"Ensure the file exists at: {path.absolute()}",
                context={"path": str(path)},
            )
        )

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise CompilationException(
            CompilationError(
                stage=CompilationStage.LOAD,
                code="E002",
                message=f"Invalid YAML syntax in {path.name}: {e}",
                suggestion="Check YAML syntax - ensure proper indentation and formatting",
                context={"path": str(path), "error": str(e)},
            )
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CompilationException(
            CompilationError(
                stage=CompilationStage.LOAD,
                code="E002",
                message=f"Expected a mapping at the top of {path.name}, got {type(data).__name__}",
                suggestion="The document must start with keys such as 'name' and 'modules'",
                context={"path": str(path)},
            )
        )
    return cast(dict[str, Any], data)


def _validate_model(data: dict[str, Any], model_class: type[T], path: Path) -> T:
    """Validate parsed YAML against a pydantic model.

    Raises:
        CompilationException: If validation fails (E003).
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        first_error = errors[0] if errors else {}
        field_path = ".".join(str(loc) for loc in first_error.get("loc", []))
        error_msg = str(first_error.get("msg", "Validation failed"))

        raise CompilationException(
            CompilationError(
                stage=CompilationStage.LOAD,
                code="E003",
                message=f"Validation error in {path.name}: {field_path}: {error_msg}",
                suggestion="Check the declaration model documentation for valid fields",
                context={
                    "path": str(path),
                    "field": field_path,
                    "message": error_msg,
                    "all_errors": [
                        {
                            "field": ".".join(str(loc) for loc in err.get("loc", [])),
                            "message": err.get("msg", ""),
                        }
                        for err in errors
                    ],
                },
            )
        ) from e


@traced(name="schema.load_unit")
def load_unit(path: Path) -> CompilationUnit:
    """Load and validate a CompilationUnit from a YAML or JSON file.

    Example:
        >>> unit = load_unit(Path("ledger.yaml"))
        >>> unit.name
        'ledger'
    """
    return _validate_model(_load_yaml(path), CompilationUnit, path)


@traced(name="schema.load_config")
def load_config(path: Path) -> CompilerConfig:
    """Load and validate a CompilerConfig from a YAML file."""
    return _validate_model(_load_yaml(path), CompilerConfig, path)


__all__ = ["load_config", "load_unit"]
