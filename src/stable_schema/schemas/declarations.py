"""Structural declaration model consumed by the versioned-schema compiler.

The compiler never parses source text. The host front-end hands it an
already-parsed tree of module declarations, and this module defines the shape
of that tree:

- SourceLocation: Where a declaration or use-site appears
- TypeExpr: A use-site of a type (qualified path or type variable)
- TypeDecl: A named type definition (alias, record, variant, abstract)
- ValueDecl: A named value or function signature
- CodecRef: How a version's codec is obtained (derived or adapter)
- FunctorParameter: A module parameter of a functor
- ModuleDecl: A (possibly nested) module declaration
- CompilationUnit: The root of the tree

All models are frozen. The tree is read-only for the whole compilation pass.

Example:
    >>> unit = CompilationUnit.model_validate({
    ...     "name": "ledger",
    ...     "modules": [{"name": "Account", "modules": [...]}],
    ... })
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Attribute names understood by the compiler
VERSIONED_ATTRIBUTE = "versioned"
VERSIONED_ASSERTED_ATTRIBUTE = "versioned_asserted"
VERSIONED_BINABLE_ATTRIBUTE = "versioned_binable"
VERSIONED_RPC_ATTRIBUTE = "versioned_rpc"
UNVERSIONED_ATTRIBUTE = "unversioned"
TEST_ATTRIBUTE = "test"


class SourceLocation(BaseModel):
    """Position of a declaration in the host source.

    Attributes:
        file: Source file name as reported by the front-end.
        line: 1-based line number (0 when unknown).
        column: 0-based column (0 when unknown).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    file: str = Field(default="<unknown>", description="Source file name")
    line: int = Field(default=0, ge=0, description="1-based line number")
    column: int = Field(default=0, ge=0, description="0-based column")

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class TypeExpr(BaseModel):
    """A use-site of a type.

    Exactly one of ``path`` and ``var`` is set. ``path`` is a qualified name
    such as ``("Account", "Stable", "V2", "t")``; ``var`` is a type variable
    such as ``"a"``. When loading from YAML/JSON a bare string is accepted as
    shorthand: ``"Account.Stable.V2.t"`` or ``"'a"``.

    Attributes:
        path: Qualified type name components.
        var: Type variable name (without the leading quote).
        args: Type arguments (``int list`` is ``list`` with one argument).
        attributes: Use-site attributes (e.g. ``unversioned``).
        location: Where the use-site appears.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: tuple[str, ...] = Field(default=(), description="Qualified type name")
    var: str | None = Field(default=None, description="Type variable name")
    args: tuple[TypeExpr, ...] = Field(default=(), description="Type arguments")
    attributes: tuple[str, ...] = Field(default=(), description="Use-site attributes")
    location: SourceLocation | None = Field(default=None, description="Use-site location")

    @model_validator(mode="before")
    @classmethod
    def _parse_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            if data.startswith("'"):
                return {"var": data[1:]}
            return {"path": tuple(data.split("."))}
        if isinstance(data, dict) and isinstance(data.get("path"), str):
            return {**data, "path": tuple(data["path"].split("."))}
        return data

    @model_validator(mode="after")
    def _check_path_or_var(self) -> TypeExpr:
        if bool(self.path) == (self.var is not None):
            raise ValueError("TypeExpr requires exactly one of 'path' or 'var'")
        return self

    @classmethod
    def of(cls, dotted: str, *args: TypeExpr) -> TypeExpr:
        """Build a TypeExpr from a dotted name.

        Example:
            >>> TypeExpr.of("list", TypeExpr.of("int")).dotted
            'list'
        """
        return cls(path=tuple(dotted.split(".")), args=args)

    @property
    def dotted(self) -> str:
        """Dotted rendering of the head (``'a`` for variables)."""
        if self.var is not None:
            return f"'{self.var}"
        return ".".join(self.path)

    def walk(self) -> Iterator[TypeExpr]:
        """Yield this expression and every nested argument, depth-first."""
        yield self
        for arg in self.args:
            yield from arg.walk()

    def __str__(self) -> str:
        if not self.args:
            return self.dotted
        rendered = ", ".join(str(a) for a in self.args)
        return f"({rendered}) {self.dotted}" if len(self.args) > 1 else f"{rendered} {self.dotted}"


class TypeKind(str, Enum):
    """Shape of a type definition."""

    ALIAS = "alias"
    RECORD = "record"
    VARIANT = "variant"
    ABSTRACT = "abstract"


class RecordField(BaseModel):
    """One field of a record type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    type: TypeExpr


class Constructor(BaseModel):
    """One constructor of a variant type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    args: tuple[TypeExpr, ...] = ()


class TypeDecl(BaseModel):
    """A named type definition.

    Attributes:
        name: Type name (``t``, ``query``, ``response``...).
        kind: Definition shape.
        params: Type parameters (``'a t`` has ``("a",)``).
        alias: Aliased expression when ``kind`` is ``alias``.
        fields: Record fields when ``kind`` is ``record``.
        constructors: Variant constructors when ``kind`` is ``variant``.
        attributes: Declaration attributes (``unversioned``, ``test``...).
        location: Where the type is declared.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Type name")
    kind: TypeKind = Field(default=TypeKind.ABSTRACT, description="Definition shape")
    params: tuple[str, ...] = Field(default=(), description="Type parameters")
    alias: TypeExpr | None = Field(default=None, description="Aliased expression")
    fields: tuple[RecordField, ...] = Field(default=(), description="Record fields")
    constructors: tuple[Constructor, ...] = Field(default=(), description="Variant constructors")
    attributes: tuple[str, ...] = Field(default=(), description="Declaration attributes")
    location: SourceLocation | None = Field(default=None, description="Declaration location")

    @model_validator(mode="after")
    def _check_shape(self) -> TypeDecl:
        if self.kind is TypeKind.ALIAS and self.alias is None:
            raise ValueError(f"type '{self.name}' is an alias but has no 'alias' expression")
        if self.kind is not TypeKind.ALIAS and self.alias is not None:
            raise ValueError(
                f"type '{self.name}' has an 'alias' expression but kind '{self.kind.value}'"
            )
        return self

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def type_exprs(self) -> Iterator[TypeExpr]:
        """Yield the top-level type expressions used by this definition."""
        if self.alias is not None:
            yield self.alias
        for record_field in self.fields:
            yield record_field.type
        for constructor in self.constructors:
            yield from constructor.args


class ValueDecl(BaseModel):
    """A named value or function signature.

    A function ``to_latest : t -> Latest.t`` has one parameter ``t`` and
    returns ``Latest.t``. A plain value has no parameters.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Value name")
    params: tuple[TypeExpr, ...] = Field(default=(), description="Parameter types")
    returns: TypeExpr = Field(..., description="Result type")
    attributes: tuple[str, ...] = Field(default=(), description="Declaration attributes")
    location: SourceLocation | None = Field(default=None, description="Declaration location")

    def type_exprs(self) -> Iterator[TypeExpr]:
        yield from self.params
        yield self.returns

    @property
    def signature(self) -> str:
        parts = [str(p) for p in self.params] + [str(self.returns)]
        return " -> ".join(parts)


class CodecRef(BaseModel):
    """How a version's codec is obtained.

    ``derived`` is default structural derivation. ``of_binable`` wraps an
    existing binary representation (``wraps`` names the wrapped type) and
    ``of_stringable`` wraps a string representation. Any other adapter string
    is preserved so the builder can reject it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    adapter: str = Field(default="derived", min_length=1, description="Codec construction strategy")
    wraps: TypeExpr | None = Field(default=None, description="Wrapped type for of_binable")
    location: SourceLocation | None = Field(default=None, description="Codec location")


class FunctorParameter(BaseModel):
    """A module parameter of a functor and the signature items it requires."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    types: tuple[TypeDecl, ...] = ()
    values: tuple[ValueDecl, ...] = ()


class ModuleDecl(BaseModel):
    """A module declaration.

    A module whose ``functor_arity`` is not ``None`` is the body of a functor
    (or the structure produced by applying one); its arity is the number of
    declared module parameters.

    Attributes:
        name: Module name.
        types: Type declarations, in declaration order.
        values: Value declarations, in declaration order.
        modules: Nested modules, in declaration order.
        attributes: Module attributes (``versioned``, ``test``...).
        codec: Codec reference (binable versions).
        alias_of: Dotted target when the module is an alias (``module Latest = V2``).
        functor_arity: Parameter count when the module is a functor body.
        functor_parameters: Declared functor parameters.
        functor_arguments: Dotted module paths passed to a functor application.
        location: Where the module is declared.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Module name")
    types: tuple[TypeDecl, ...] = Field(default=(), description="Type declarations")
    values: tuple[ValueDecl, ...] = Field(default=(), description="Value declarations")
    modules: tuple[ModuleDecl, ...] = Field(default=(), description="Nested modules")
    attributes: tuple[str, ...] = Field(default=(), description="Module attributes")
    codec: CodecRef | None = Field(default=None, description="Codec reference")
    alias_of: str | None = Field(default=None, description="Module alias target")
    functor_arity: int | None = Field(default=None, ge=0, description="Functor parameter count")
    functor_parameters: tuple[FunctorParameter, ...] = Field(default=())
    functor_arguments: tuple[str, ...] = Field(default=())
    location: SourceLocation | None = Field(default=None, description="Declaration location")

    @model_validator(mode="after")
    def _check_functor(self) -> ModuleDecl:
        if self.functor_parameters and self.functor_arity is None:
            raise ValueError(f"module '{self.name}' declares functor parameters without an arity")
        if self.functor_arity is not None and len(self.functor_parameters) > self.functor_arity:
            raise ValueError(
                f"module '{self.name}' declares {len(self.functor_parameters)} "
                f"functor parameters but arity {self.functor_arity}"
            )
        return self

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def find_type(self, name: str) -> TypeDecl | None:
        return next((t for t in self.types if t.name == name), None)

    def find_value(self, name: str) -> ValueDecl | None:
        return next((v for v in self.values if v.name == name), None)

    def find_module(self, name: str) -> ModuleDecl | None:
        return next((m for m in self.modules if m.name == name), None)


class CompilationUnit(BaseModel):
    """Root of the declaration tree handed over by the front-end."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Compilation unit name")
    modules: tuple[ModuleDecl, ...] = Field(default=(), description="Top-level modules")


TypeExpr.model_rebuild()
ModuleDecl.model_rebuild()


__all__ = [
    "TEST_ATTRIBUTE",
    "UNVERSIONED_ATTRIBUTE",
    "VERSIONED_ASSERTED_ATTRIBUTE",
    "VERSIONED_ATTRIBUTE",
    "VERSIONED_BINABLE_ATTRIBUTE",
    "VERSIONED_RPC_ATTRIBUTE",
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
]
