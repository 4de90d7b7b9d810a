"""Whole-program reference index.

One ReferenceIndex is built per compilation pass. It records:

- every declared type and module path, classified (specific version, Latest,
  unversioned, plain, test)
- every TypeReference in the unit, tagged with its enclosing context

The validator rules all run against this single index rather than checking
declarations one at a time, so a leak in any module is seen regardless of
where the leaked family is declared.

Reference paths are resolved like qualified names in the host language: a
path is looked up relative to the enclosing module first, then each outer
module, then the unit root.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict, Field

from stable_schema.compilation.builder import FamilyDeclaration, discover_families, is_test_module
from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import (
    UNVERSIONED_ATTRIBUTE,
    CompilationUnit,
    ModuleDecl,
    SourceLocation,
    TypeDecl,
    TypeExpr,
)
from stable_schema.schemas.family import parse_version_module_name

logger = structlog.get_logger(__name__)


class ReferenceContextKind(str, Enum):
    """Where a type reference occurs."""

    VERSION = "inside_version"
    """Inside a specific version module ``V<k>`` of a family."""

    LATEST_ALIAS = "inside_latest_alias"
    """Inside a family's ``Latest`` alias module."""

    FUNCTOR_BODY = "inside_functor_body"
    """Inside the body of a functor (including its parameter signatures)."""

    TEST = "inside_test"
    """Inside a test declaration; exempt from every rule."""

    ORDINARY = "ordinary"
    """Anywhere else."""


class ReferenceContext(BaseModel):
    """Enclosing context of a TypeReference.

    Attributes:
        kind: Context tag.
        family: Family name for version and Latest contexts.
        version: Version number for version contexts.
        functor_arity: Arity for functor body contexts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ReferenceContextKind = ReferenceContextKind.ORDINARY
    family: str | None = None
    version: int | None = None
    functor_arity: int | None = None


ORDINARY_CONTEXT = ReferenceContext()
TEST_CONTEXT = ReferenceContext(kind=ReferenceContextKind.TEST)


class TypeReference(BaseModel):
    """A use-site of a type or module, tagged with its context.

    Attributes:
        path: Referenced path as written.
        scope: Path of the enclosing module (resolution starts here).
        owner: Dotted path of the declaration containing the reference.
        context: Enclosing context.
        definition: True inside a type definition, False in a signature.
        exempt: True under a use-site ``unversioned`` annotation.
        is_module: True for module paths (functor arguments, module alias targets).
        location: Use-site location, falling back to the owner's location.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: tuple[str, ...] = Field(..., min_length=1)
    scope: tuple[str, ...] = ()
    owner: str = Field(..., min_length=1)
    context: ReferenceContext = ORDINARY_CONTEXT
    definition: bool = False
    exempt: bool = False
    is_module: bool = False
    location: SourceLocation | None = None

    @property
    def dotted(self) -> str:
        return ".".join(self.path)


class DeclarationKind(str, Enum):
    """Classification of a declared type or module, and of resolved references."""

    BUILTIN = "builtin"
    VERSION = "version"
    LATEST = "latest"
    UNVERSIONED = "unversioned"
    PLAIN = "plain"
    TEST = "test"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DeclaredType:
    """A type (or module) declared somewhere in the unit."""

    path: tuple[str, ...]
    kind: DeclarationKind
    scope: tuple[str, ...] = ()
    family: str | None = None
    version: int | None = None
    alias: TypeExpr | None = None


@dataclass(frozen=True)
class Resolution:
    """What a reference resolved to."""

    kind: DeclarationKind
    family: str | None = None
    version: int | None = None
    target: tuple[str, ...] = ()


@dataclass
class ReferenceIndex:
    """Declared names and every reference of one compilation unit.

    Build with ReferenceIndex.from_unit(). Read-only afterwards.

    Attributes:
        config: Naming conventions and built-ins.
        declarations: Family containers discovered in the unit.
        types: Declared types by absolute path.
        modules: Version and Latest modules by absolute path.
        module_aliases: Module aliases (``module Old = Account.Stable.V1``) by path.
        references: Every reference, in tree order.
    """

    config: CompilerConfig
    declarations: tuple[FamilyDeclaration, ...] = ()
    types: dict[tuple[str, ...], DeclaredType] = field(default_factory=dict)
    modules: dict[tuple[str, ...], DeclaredType] = field(default_factory=dict)
    module_aliases: dict[tuple[str, ...], DeclaredType] = field(default_factory=dict)
    references: list[TypeReference] = field(default_factory=list)

    @classmethod
    def from_unit(
        cls,
        unit: CompilationUnit,
        config: CompilerConfig | None = None,
        declarations: Iterable[FamilyDeclaration] | None = None,
    ) -> ReferenceIndex:
        """Index a compilation unit.

        Args:
            unit: The declaration tree.
            config: Naming conventions (defaults apply when None).
            declarations: Family containers, if already discovered.

        Returns:
            The populated index.
        """
        cfg = config or CompilerConfig()
        found = (
            tuple(declarations) if declarations is not None else tuple(discover_families(unit, cfg))
        )
        index = cls(config=cfg, declarations=found)
        index._register_latest_aliases()
        containers = {d.container_path: d for d in found}
        for module in unit.modules:
            index._walk(module, (), ORDINARY_CONTEXT, containers)
        logger.debug(
            "reference_index_built",
            unit=unit.name,
            families=len(found),
            types=len(index.types),
            references=len(index.references),
        )
        return index

    def in_context(self, kind: ReferenceContextKind) -> Iterator[TypeReference]:
        """Yield references whose context has the given kind."""
        return (r for r in self.references if r.context.kind is kind)

    def resolve(self, reference: TypeReference) -> Resolution:
        """Resolve a reference to the classification of what it names.

        Plain aliases are followed, so ``Account.t = Account.Stable.Latest.t``
        resolves as Latest. A path that names ``<container>.V<k>`` is a
        specific version even when its family is declared outside the unit.
        """
        if reference.is_module:
            return self._resolve_module(reference.path, reference.scope, set())
        return self._resolve_type(reference.path, reference.scope, set())

    def _resolve_type(
        self,
        path: tuple[str, ...],
        scope: tuple[str, ...],
        visiting: set[tuple[str, ...]],
    ) -> Resolution:
        if self.config.is_builtin(path):
            return Resolution(kind=DeclarationKind.BUILTIN, target=path)

        declared = self._lookup(self.types, path, scope)
        if declared is not None:
            if (
                declared.kind is DeclarationKind.PLAIN
                and declared.alias is not None
                and declared.alias.path
                and declared.path not in visiting
            ):
                target = self._resolve_type(
                    declared.alias.path, declared.scope, visiting | {declared.path}
                )
                if target.kind is DeclarationKind.LATEST:
                    return target
            return Resolution(
                kind=declared.kind,
                family=declared.family,
                version=declared.version,
                target=declared.path,
            )
        aliased = self._through_module_alias(path, scope, visiting, is_module=False)
        if aliased is not None:
            return aliased
        return self._resolve_by_shape(path)

    def _resolve_module(
        self,
        path: tuple[str, ...],
        scope: tuple[str, ...],
        visiting: set[tuple[str, ...]],
    ) -> Resolution:
        declared = self._lookup(self.modules, path, scope)
        if declared is not None:
            return Resolution(
                kind=declared.kind,
                family=declared.family,
                version=declared.version,
                target=declared.path,
            )
        aliased = self._through_module_alias(path, scope, visiting, is_module=True)
        if aliased is not None:
            return aliased
        return self._resolve_by_shape(path)

    def _through_module_alias(
        self,
        path: tuple[str, ...],
        scope: tuple[str, ...],
        visiting: set[tuple[str, ...]],
        *,
        is_module: bool,
    ) -> Resolution | None:
        """Resolve ``path`` after rewriting its longest module-alias prefix.

        ``Old.t`` with ``module Old = Account.Stable.V1`` resolves as
        ``Account.Stable.V1.t``, looked up from where the alias is declared.
        """
        end = len(path) if is_module else len(path) - 1
        for i in range(end, 0, -1):
            declared = self._lookup(self.module_aliases, path[:i], scope)
            if declared is None or declared.alias is None or declared.path in visiting:
                continue
            target = (*declared.alias.path, *path[i:])
            if is_module:
                return self._resolve_module(target, declared.scope, visiting | {declared.path})
            return self._resolve_type(target, declared.scope, visiting | {declared.path})
        return None

    def _resolve_by_shape(self, path: tuple[str, ...]) -> Resolution:
        """Classify an unresolved path by its ``<container>.V<k>`` / ``.Latest`` shape."""
        container = self.config.container_name
        for i in range(len(path) - 1):
            if path[i] != container:
                continue
            family = ".".join(path[:i]) or container
            number = parse_version_module_name(path[i + 1])
            if number is not None:
                return Resolution(
                    kind=DeclarationKind.VERSION, family=family, version=number, target=path
                )
            if path[i + 1] == self.config.latest_name:
                return Resolution(kind=DeclarationKind.LATEST, family=family, target=path)
        return Resolution(kind=DeclarationKind.UNKNOWN, target=path)

    @staticmethod
    def _lookup(
        table: dict[tuple[str, ...], DeclaredType],
        path: tuple[str, ...],
        scope: tuple[str, ...],
    ) -> DeclaredType | None:
        for i in range(len(scope), -1, -1):
            candidate = (*scope[:i], *path)
            if candidate in table:
                return table[candidate]
        return None

    def _register_latest_aliases(self) -> None:
        """Register the generated ``Latest`` module and types of every family."""
        for declaration in self.declarations:
            latest_path = (*declaration.container_path, self.config.latest_name)
            self.modules[latest_path] = DeclaredType(
                path=latest_path, kind=DeclarationKind.LATEST, family=declaration.name
            )
            for type_name in self.config.versioned_type_names(declaration.kind):
                type_path = (*latest_path, type_name)
                self.types[type_path] = DeclaredType(
                    path=type_path, kind=DeclarationKind.LATEST, family=declaration.name
                )

    def _enter(
        self,
        module: ModuleDecl,
        path: tuple[str, ...],
        outer: ReferenceContext,
        containers: dict[tuple[str, ...], FamilyDeclaration],
    ) -> ReferenceContext:
        """Compute the context that applies inside ``module``."""
        if outer.kind is ReferenceContextKind.TEST or is_test_module(module, self.config):
            return TEST_CONTEXT

        declaration = containers.get(path[:-1])
        if declaration is not None:
            number = parse_version_module_name(module.name)
            if number is not None:
                self.modules[path] = DeclaredType(
                    path=path,
                    kind=DeclarationKind.VERSION,
                    family=declaration.name,
                    version=number,
                )
                return ReferenceContext(
                    kind=ReferenceContextKind.VERSION, family=declaration.name, version=number
                )
            if module.name == self.config.latest_name:
                return ReferenceContext(
                    kind=ReferenceContextKind.LATEST_ALIAS, family=declaration.name
                )

        if outer.kind in (ReferenceContextKind.VERSION, ReferenceContextKind.LATEST_ALIAS):
            return outer
        if module.functor_arity is not None:
            return ReferenceContext(
                kind=ReferenceContextKind.FUNCTOR_BODY, functor_arity=module.functor_arity
            )
        return outer

    def _walk(
        self,
        module: ModuleDecl,
        parent: tuple[str, ...],
        outer: ReferenceContext,
        containers: dict[tuple[str, ...], FamilyDeclaration],
    ) -> None:
        path = (*parent, module.name)
        context = self._enter(module, path, outer, containers)

        # Functor application arguments are written in the enclosing scope
        argument_context = TEST_CONTEXT if context.kind is ReferenceContextKind.TEST else outer
        for argument in module.functor_arguments:
            self.references.append(
                TypeReference(
                    path=tuple(argument.split(".")),
                    scope=parent,
                    owner=".".join(path),
                    context=argument_context,
                    is_module=True,
                    location=module.location,
                )
            )

        if module.alias_of is not None:
            self._collect_module_alias(module, path, parent, outer, context)

        for parameter in module.functor_parameters:
            owner = f"{'.'.join(path)}({parameter.name})"
            for type_decl in parameter.types:
                self._collect_type_decl(type_decl, path, owner, context, register=False)
            for value in parameter.values:
                for expr in value.type_exprs():
                    self._collect_expr(
                        expr, path, f"{owner}.{value.name}", context, False, value.location
                    )

        for type_decl in module.types:
            self._collect_type_decl(type_decl, path, ".".join(path), context, register=True)

        for value in module.values:
            owner = ".".join((*path, value.name))
            for expr in value.type_exprs():
                self._collect_expr(expr, path, owner, context, False, value.location)

        for child in module.modules:
            self._walk(child, path, context, containers)

    def _collect_module_alias(
        self,
        module: ModuleDecl,
        path: tuple[str, ...],
        parent: tuple[str, ...],
        outer: ReferenceContext,
        context: ReferenceContext,
    ) -> None:
        """Register ``module <path> = <alias_of>`` and index its target as a reference."""
        target = tuple((module.alias_of or "").split("."))
        self.module_aliases[path] = DeclaredType(
            path=path,
            kind=DeclarationKind.PLAIN,
            scope=parent,
            alias=TypeExpr(path=target),
        )
        # Written in the enclosing scope; Latest and version modules keep their context
        alias_context = outer if context.kind is ReferenceContextKind.FUNCTOR_BODY else context
        self.references.append(
            TypeReference(
                path=target,
                scope=parent,
                owner=".".join(path),
                context=alias_context,
                is_module=True,
                location=module.location,
            )
        )

    def _collect_type_decl(
        self,
        type_decl: TypeDecl,
        scope: tuple[str, ...],
        owner_prefix: str,
        context: ReferenceContext,
        *,
        register: bool,
    ) -> None:
        type_path = (*scope, type_decl.name)
        if register:
            self.types[type_path] = self._classify_declaration(type_decl, type_path, scope, context)
        owner = f"{owner_prefix}.{type_decl.name}"
        for expr in type_decl.type_exprs():
            self._collect_expr(expr, scope, owner, context, True, type_decl.location)

    def _classify_declaration(
        self,
        type_decl: TypeDecl,
        type_path: tuple[str, ...],
        scope: tuple[str, ...],
        context: ReferenceContext,
    ) -> DeclaredType:
        if context.kind is ReferenceContextKind.TEST:
            kind = DeclarationKind.TEST
        elif context.kind is ReferenceContextKind.VERSION:
            kind = DeclarationKind.VERSION
        elif context.kind is ReferenceContextKind.LATEST_ALIAS:
            kind = DeclarationKind.LATEST
        elif type_decl.has_attribute(UNVERSIONED_ATTRIBUTE):
            kind = DeclarationKind.UNVERSIONED
        else:
            kind = DeclarationKind.PLAIN
        return DeclaredType(
            path=type_path,
            kind=kind,
            scope=scope,
            family=context.family,
            version=context.version,
            alias=type_decl.alias,
        )

    def _collect_expr(
        self,
        expr: TypeExpr,
        scope: tuple[str, ...],
        owner: str,
        context: ReferenceContext,
        definition: bool,
        fallback_location: SourceLocation | None,
        exempt: bool = False,
    ) -> None:
        exempt = exempt or UNVERSIONED_ATTRIBUTE in expr.attributes
        if expr.path:
            self.references.append(
                TypeReference(
                    path=expr.path,
                    scope=scope,
                    owner=owner,
                    context=context,
                    definition=definition,
                    exempt=exempt,
                    location=expr.location or fallback_location,
                )
            )
        for arg in expr.args:
            self._collect_expr(arg, scope, owner, context, definition, fallback_location, exempt)


__all__ = [
    "DeclarationKind",
    "DeclaredType",
    "ReferenceContext",
    "ReferenceContextKind",
    "ReferenceIndex",
    "Resolution",
    "TypeReference",
]
