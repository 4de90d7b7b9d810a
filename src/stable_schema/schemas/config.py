"""Compiler configuration.

CompilerConfig holds the naming conventions and the built-in type universe
the builder and validator work against. The defaults follow the conventional
layout (a ``Stable`` container holding ``V1 .. Vn``, each declaring ``t`` and
``to_latest``) and can be overridden from a YAML file.

Example:
    >>> config = CompilerConfig(builtin_module_prefixes=("Core_kernel",))
    >>> config.is_builtin(("Core_kernel", "Time", "Stable", "V1", "t"))
    True
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from stable_schema.schemas.family import FamilyKind

DEFAULT_BUILTIN_TYPES: frozenset[str] = frozenset(
    {
        "unit",
        "bool",
        "char",
        "int",
        "int32",
        "int64",
        "float",
        "string",
        "bytes",
        "bigint",
    }
)

DEFAULT_BUILTIN_TYPE_CONSTRUCTORS: frozenset[str] = frozenset(
    {
        "option",
        "list",
        "array",
    }
)


class CompilerConfig(BaseModel):
    """Naming conventions and built-in types for one compilation pass.

    Attributes:
        container_name: Name of the family container module.
        latest_name: Name of the Latest alias module.
        versioned_type_name: Versioned type name of ordinary families.
        upgrade_function_name: Upgrade function name for ``versioned_type_name``.
        test_module_name: Module name that always counts as a test declaration.
        rpc_query_type: Query type name of RPC families.
        rpc_response_type: Response type name of RPC families.
        builtin_types: Primitive types accepted inside versioned definitions.
        builtin_type_constructors: Parameterised built-ins; arguments are checked.
        builtin_module_prefixes: Top-level modules whose types are trusted as stable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    container_name: str = Field(default="Stable", min_length=1)
    latest_name: str = Field(default="Latest", min_length=1)
    versioned_type_name: str = Field(default="t", min_length=1)
    upgrade_function_name: str = Field(default="to_latest", min_length=1)
    test_module_name: str = Field(default="Tests", min_length=1)
    rpc_query_type: str = Field(default="query", min_length=1)
    rpc_response_type: str = Field(default="response", min_length=1)
    builtin_types: frozenset[str] = Field(default=DEFAULT_BUILTIN_TYPES)
    builtin_type_constructors: frozenset[str] = Field(default=DEFAULT_BUILTIN_TYPE_CONSTRUCTORS)
    builtin_module_prefixes: tuple[str, ...] = Field(default=())

    def versioned_type_names(self, kind: FamilyKind) -> tuple[str, ...]:
        """Names of the types every version of a family of this kind declares."""
        if kind is FamilyKind.RPC:
            return (self.rpc_query_type, self.rpc_response_type)
        return (self.versioned_type_name,)

    def upgrade_name_for(self, type_name: str) -> str:
        """Upgrade function name for a versioned type.

        ``t`` upgrades through ``to_latest``; any other type ``x`` through
        ``x_to_latest`` (RPC ``query_to_latest`` / ``response_to_latest``).
        """
        if type_name == self.versioned_type_name:
            return self.upgrade_function_name
        return f"{type_name}_{self.upgrade_function_name}"

    def is_builtin(self, path: tuple[str, ...]) -> bool:
        """Return True if a type path names a built-in or trusted type."""
        if len(path) == 1:
            return path[0] in self.builtin_types or path[0] in self.builtin_type_constructors
        return bool(path) and path[0] in self.builtin_module_prefixes


__all__ = [
    "DEFAULT_BUILTIN_TYPES",
    "DEFAULT_BUILTIN_TYPE_CONSTRUCTORS",
    "CompilerConfig",
]
