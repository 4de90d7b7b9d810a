"""Version Graph Builder.

Groups the ``V1 .. Vn`` modules found directly inside a family container
(conventionally ``Stable``) into a validated SchemaFamily, or reports why it
cannot:

- EmptyFamily: no version modules
- NonContiguousVersions: numbers are not exactly 1..n
- MissingUpgradeFunction: a non-latest version lacks ``to_latest : t -> Latest.t``
- MissingTestObligation: asserted family without a companion test
- UnrecognizedCodecAdapter: binable version whose codec is not a known adapter
- MissingVersionedType: version module without its versioned type
- UnexpectedContainerMember: container module that is not a version, Latest or test
- LatestNotHighest: hand-written Latest alias pointing below the highest version

Every non-latest version upgrades directly to Latest. Chaining through
intermediate versions is rejected: adding a new Latest version requires
updating each earlier ``to_latest``.

The builder performs no I/O and never mutates its input.

Example:
    >>> from stable_schema.compilation.builder import VersionGraphBuilder, discover_families
    >>> builder = VersionGraphBuilder()
    >>> for declaration in discover_families(unit):
    ...     result = builder.build(declaration)
    ...     if result.family is None:
    ...         for d in result.diagnostics:
    ...             print(d.format())
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog
from pydantic import BaseModel, ConfigDict, Field

from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import (
    TEST_ATTRIBUTE,
    VERSIONED_ASSERTED_ATTRIBUTE,
    VERSIONED_ATTRIBUTE,
    VERSIONED_BINABLE_ATTRIBUTE,
    VERSIONED_RPC_ATTRIBUTE,
    CodecRef,
    CompilationUnit,
    ModuleDecl,
    TypeDecl,
    TypeExpr,
    ValueDecl,
)
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode, count_by_code
from stable_schema.schemas.family import (
    RECOGNIZED_CODEC_ADAPTERS,
    FamilyKind,
    SchemaFamily,
    SchemaVersion,
    TestObligation,
    UpgradeFunction,
    VersionVariant,
    parse_version_module_name,
)

logger = structlog.get_logger(__name__)

# Container attribute -> (kind, variant)
FAMILY_ATTRIBUTES: dict[str, tuple[FamilyKind, VersionVariant]] = {
    VERSIONED_ATTRIBUTE: (FamilyKind.TYPE, VersionVariant.PLAIN),
    VERSIONED_ASSERTED_ATTRIBUTE: (FamilyKind.TYPE, VersionVariant.ASSERTED),
    VERSIONED_BINABLE_ATTRIBUTE: (FamilyKind.TYPE, VersionVariant.BINABLE),
    VERSIONED_RPC_ATTRIBUTE: (FamilyKind.RPC, VersionVariant.PLAIN),
}


def family_attribute(module: ModuleDecl) -> tuple[FamilyKind, VersionVariant] | None:
    """Return the (kind, variant) a container attribute declares, if any."""
    for attribute in module.attributes:
        if attribute in FAMILY_ATTRIBUTES:
            return FAMILY_ATTRIBUTES[attribute]
    return None


def is_test_module(module: ModuleDecl, config: CompilerConfig) -> bool:
    """Return True if a module is a test declaration."""
    return module.name == config.test_module_name or module.has_attribute(TEST_ATTRIBUTE)


class FamilyDeclaration(BaseModel):
    """A family container found in the declaration tree, before building.

    Attributes:
        container: The container module (``Stable``).
        parent_path: Absolute path of the module holding the container.
        kind: Ordinary type or RPC.
        variant: Declared codec strategy.
        functor_arities: Arities of enclosing functor bodies, outermost first.
        in_test: True when declared inside a test declaration.
        parent_types: Types declared by the parent module (``Account.t``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    container: ModuleDecl
    parent_path: tuple[str, ...] = ()
    kind: FamilyKind = FamilyKind.TYPE
    variant: VersionVariant = VersionVariant.PLAIN
    functor_arities: tuple[int, ...] = ()
    in_test: bool = False
    parent_types: tuple[TypeDecl, ...] = ()

    @property
    def container_path(self) -> tuple[str, ...]:
        return (*self.parent_path, self.container.name)

    @property
    def name(self) -> str:
        if self.parent_path:
            return ".".join(self.parent_path)
        return self.container.name


class FamilyBuildResult(BaseModel):
    """Outcome of building one family: a family or the reasons it failed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    family: SchemaFamily | None = Field(default=None)
    diagnostics: tuple[Diagnostic, ...] = Field(default=())

    @property
    def ok(self) -> bool:
        return self.family is not None


def discover_families(
    unit: CompilationUnit,
    config: CompilerConfig | None = None,
) -> list[FamilyDeclaration]:
    """Find every family container in a compilation unit.

    A container is any module carrying one of the family attributes
    (``versioned``, ``versioned_asserted``, ``versioned_binable``,
    ``versioned_rpc``). The walk records enclosing functor arities and
    whether the container sits inside a test declaration.

    Args:
        unit: The compilation unit to search.
        config: Naming conventions (defaults apply when None).

    Returns:
        Family declarations in tree order.
    """
    cfg = config or CompilerConfig()
    found: list[FamilyDeclaration] = []

    def walk(
        module: ModuleDecl,
        parent_path: tuple[str, ...],
        arities: tuple[int, ...],
        in_test: bool,
        parent_types: tuple[TypeDecl, ...],
    ) -> None:
        in_test = in_test or is_test_module(module, cfg)
        if module.functor_arity is not None:
            arities = (*arities, module.functor_arity)
        tagged = family_attribute(module)
        if tagged is not None:
            kind, variant = tagged
            found.append(
                FamilyDeclaration(
                    container=module,
                    parent_path=parent_path,
                    kind=kind,
                    variant=variant,
                    functor_arities=arities,
                    in_test=in_test,
                    parent_types=parent_types,
                )
            )
        for child in module.modules:
            walk(child, (*parent_path, module.name), arities, in_test, module.types)

    for module in unit.modules:
        walk(module, (), (), False, ())
    return found


def _denotes(path: tuple[str, ...], full_path: tuple[str, ...], min_length: int) -> bool:
    """Return True if ``path`` is a qualified-enough suffix of ``full_path``."""
    n = len(path)
    return min_length <= n <= len(full_path) and full_path[-n:] == path


class VersionGraphBuilder:
    """Builds SchemaFamily values from family declarations.

    Stateless: each call to build() processes one declaration and returns a
    FamilyBuildResult. Diagnostics are returned, never accumulated here.

    Attributes:
        config: Naming conventions used to recognize versions and upgrades.
    """

    def __init__(self, config: CompilerConfig | None = None) -> None:
        self.config = config or CompilerConfig()
        self._log = logger.bind(component=type(self).__name__)

    def build(self, declaration: FamilyDeclaration) -> FamilyBuildResult:
        """Build one family.

        Args:
            declaration: The discovered container and its context.

        Returns:
            FamilyBuildResult with the family, or with the diagnostics that
            prevented building it (never both).
        """
        diagnostics: list[Diagnostic] = []
        versions, latest_module, tests = self._partition(declaration, diagnostics)

        if not versions:
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.EMPTY_FAMILY,
                    message=f"'{'.'.join(declaration.container_path)}' declares no version modules",
                    subject=declaration.name,
                    location=declaration.container.location,
                    suggestion=(
                        f"Declare at least 'module V1' inside '{declaration.container.name}'"
                    ),
                )
            )
            return self._finish(declaration, None, diagnostics)

        numbers = sorted(number for number, _ in versions)
        if numbers != list(range(1, len(numbers) + 1)):
            diagnostics.append(self._non_contiguous(declaration, numbers))
            return self._finish(declaration, None, diagnostics)

        ordered = sorted(versions, key=lambda item: item[0])
        latest_number = len(ordered)
        type_names = self.versioned_type_names(declaration)

        if latest_module is not None:
            diagnostics.extend(self._check_latest_alias(declaration, latest_module, latest_number))

        built: list[SchemaVersion] = []
        for number, module in ordered:
            version, version_diagnostics = self._build_version(
                declaration, number, module, latest_number, type_names
            )
            diagnostics.extend(version_diagnostics)
            if version is not None:
                built.append(version)

        obligation = self._test_obligation(declaration, tests, ordered)
        if declaration.variant is VersionVariant.ASSERTED and obligation is None:
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.MISSING_TEST_OBLIGATION,
                    message="asserted family has no companion test declaration",
                    subject=declaration.name,
                    location=declaration.container.location,
                    suggestion=(
                        f"Add 'module {self.config.test_module_name}' inside "
                        f"'{declaration.container.name}' exercising the serialized form"
                    ),
                )
            )

        if diagnostics:
            return self._finish(declaration, None, diagnostics)

        family = SchemaFamily(
            name=declaration.name,
            container_path=declaration.container_path,
            kind=declaration.kind,
            variant=declaration.variant,
            type_names=type_names,
            versions=tuple(built),
            test_obligation=obligation,
            functor_arities=declaration.functor_arities,
            in_test=declaration.in_test,
            location=declaration.container.location,
        )
        return self._finish(declaration, family, diagnostics)

    def versioned_type_names(self, declaration: FamilyDeclaration) -> tuple[str, ...]:
        """Names of the types every version of this family must declare."""
        return self.config.versioned_type_names(declaration.kind)

    def check_version_members(
        self,
        declaration: FamilyDeclaration,
        module: ModuleDecl,
    ) -> tuple[dict[str, ValueDecl], list[Diagnostic]]:
        """Hook for kind-specific members of a version module.

        Returns:
            Extra declarations to record on the version, plus diagnostics.
        """
        return {}, []

    def _finish(
        self,
        declaration: FamilyDeclaration,
        family: SchemaFamily | None,
        diagnostics: list[Diagnostic],
    ) -> FamilyBuildResult:
        if family is not None:
            self._log.info(
                "family_built",
                family=family.name,
                kind=family.kind.value,
                variant=family.variant.value,
                latest=family.latest.number,
            )
        else:
            self._log.info(
                "family_rejected",
                family=declaration.name,
                by_code=count_by_code(diagnostics),
            )
        return FamilyBuildResult(family=family, diagnostics=tuple(diagnostics))

    def _partition(
        self,
        declaration: FamilyDeclaration,
        diagnostics: list[Diagnostic],
    ) -> tuple[list[tuple[int, ModuleDecl]], ModuleDecl | None, list[ModuleDecl]]:
        """Split container members into versions, the Latest alias and tests."""
        versions: list[tuple[int, ModuleDecl]] = []
        latest_module: ModuleDecl | None = None
        tests: list[ModuleDecl] = []

        for module in declaration.container.modules:
            number = parse_version_module_name(module.name)
            if number is not None:
                versions.append((number, module))
            elif module.name == self.config.latest_name:
                latest_module = module
            elif is_test_module(module, self.config):
                tests.append(module)
            else:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.UNEXPECTED_CONTAINER_MEMBER,
                        message=(
                            f"module '{module.name}' inside '{declaration.container.name}' "
                            "is not a version, the Latest alias or a test"
                        ),
                        subject=declaration.name,
                        location=module.location,
                        suggestion=(
                            f"Move '{module.name}' out of '{declaration.container.name}' "
                            "or rename it V<n>"
                        ),
                    )
                )
        return versions, latest_module, tests

    def _non_contiguous(self, declaration: FamilyDeclaration, numbers: list[int]) -> Diagnostic:
        expected = list(range(1, len(numbers) + 1))
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        missing = sorted(set(range(1, max(numbers) + 1)) - set(numbers))
        details: list[str] = []
        if missing:
            details.append("missing " + ", ".join(f"V{n}" for n in missing))
        if duplicates:
            details.append("duplicate " + ", ".join(f"V{n}" for n in duplicates))
        if 0 in numbers:
            details.append("V0 is not a valid version")
        found = ", ".join(f"V{n}" for n in numbers)
        return Diagnostic(
            code=DiagnosticCode.NON_CONTIGUOUS_VERSIONS,
            message=(
                f"versions must be exactly {', '.join(f'V{n}' for n in expected)}; "
                f"found {found} ({'; '.join(details)})"
            ),
            subject=declaration.name,
            location=declaration.container.location,
            suggestion="Number versions consecutively from V1 without gaps or duplicates",
        )

    def _check_latest_alias(
        self,
        declaration: FamilyDeclaration,
        latest_module: ModuleDecl,
        latest_number: int,
    ) -> list[Diagnostic]:
        targets: list[str] = []
        if latest_module.alias_of is not None:
            targets.append(latest_module.alias_of.split(".")[-1])
        for type_decl in latest_module.types:
            if type_decl.alias is not None:
                targets.extend(
                    c for c in type_decl.alias.path if parse_version_module_name(c) is not None
                )

        wrong = sorted({t for t in targets if parse_version_module_name(t) != latest_number})
        if not wrong:
            return []
        return [
            Diagnostic(
                code=DiagnosticCode.LATEST_NOT_HIGHEST,
                message=(
                    f"'{self.config.latest_name}' refers to {', '.join(wrong)} "
                    f"but the highest version is V{latest_number}"
                ),
                subject=declaration.name,
                location=latest_module.location,
                suggestion=f"Alias '{self.config.latest_name}' to V{latest_number} or remove it",
            )
        ]

    def _build_version(
        self,
        declaration: FamilyDeclaration,
        number: int,
        module: ModuleDecl,
        latest_number: int,
        type_names: tuple[str, ...],
    ) -> tuple[SchemaVersion | None, list[Diagnostic]]:
        diagnostics: list[Diagnostic] = []
        subject = f"{declaration.name}.{module.name}"

        types = []
        for type_name in type_names:
            type_decl = module.find_type(type_name)
            if type_decl is None:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.MISSING_VERSIONED_TYPE,
                        message=f"'{module.name}' does not declare type '{type_name}'",
                        subject=subject,
                        location=module.location,
                        suggestion=f"Declare 'type {type_name}' inside '{module.name}'",
                    )
                )
            else:
                types.append(type_decl)

        upgrades: dict[str, UpgradeFunction] = {}
        if number != latest_number:
            for type_name in type_names:
                upgrade, diagnostic = self._find_upgrade(
                    declaration, number, module, latest_number, type_name
                )
                if upgrade is not None:
                    upgrades[type_name] = upgrade
                if diagnostic is not None:
                    diagnostics.append(diagnostic)

        codec = module.codec or CodecRef()
        if declaration.variant is VersionVariant.BINABLE:
            diagnostic = self._check_codec_adapter(subject, module, module.codec)
            if diagnostic is not None:
                diagnostics.append(diagnostic)

        adapters, member_diagnostics = self.check_version_members(declaration, module)
        diagnostics.extend(member_diagnostics)

        if diagnostics:
            return None, diagnostics
        version = SchemaVersion(
            number=number,
            module_path=(*declaration.container_path, module.name),
            types=tuple(types),
            codec=codec,
            upgrades=upgrades,
            adapters=adapters,
            location=module.location,
        )
        return version, diagnostics

    def _find_upgrade(
        self,
        declaration: FamilyDeclaration,
        number: int,
        module: ModuleDecl,
        latest_number: int,
        type_name: str,
    ) -> tuple[UpgradeFunction | None, Diagnostic | None]:
        function_name = self.config.upgrade_name_for(type_name)
        expected = f"{type_name} -> {self.config.latest_name}.{type_name}"
        value = module.find_value(function_name)

        if value is None:
            problem = f"'V{number}' has no upgrade function '{function_name}'"
        elif len(value.params) != 1:
            problem = (
                f"'V{number}.{function_name}' takes {len(value.params)} parameters; "
                f"expected exactly one"
            )
        elif not self._is_own_type(declaration, number, type_name, value.params[0]):
            problem = (
                f"'V{number}.{function_name}' has signature '{value.signature}'; "
                f"its parameter must be V{number}.{type_name}"
            )
        elif not self._is_latest_type(declaration, latest_number, type_name, value.returns):
            chained = self._names_version(value.returns)
            problem = f"'V{number}.{function_name}' has signature '{value.signature}'; "
            if chained is not None and chained != latest_number:
                problem += f"it upgrades to V{chained} instead of directly to the latest version"
            else:
                problem += f"it must return {self.config.latest_name}.{type_name}"
        else:
            upgrade = UpgradeFunction(
                name=function_name,
                type_name=type_name,
                parameter=value.params[0],
                returns=value.returns,
                location=value.location,
            )
            return upgrade, None

        return None, Diagnostic(
            code=DiagnosticCode.MISSING_UPGRADE_FUNCTION,
            message=problem,
            subject=f"{declaration.name}.V{number}",
            location=value.location if value is not None else module.location,
            suggestion=f"Declare '{function_name} : {expected}' in 'V{number}'",
        )

    def _is_own_type(
        self,
        declaration: FamilyDeclaration,
        number: int,
        type_name: str,
        expr: TypeExpr,
    ) -> bool:
        own = (*declaration.container_path, f"V{number}", type_name)
        return _denotes(expr.path, own, 1)

    def _is_latest_type(
        self,
        declaration: FamilyDeclaration,
        latest_number: int,
        type_name: str,
        expr: TypeExpr,
    ) -> bool:
        for full_path in self._latest_paths(declaration, latest_number, type_name):
            if _denotes(expr.path, full_path, 2):
                return True
        return False

    def _latest_paths(
        self,
        declaration: FamilyDeclaration,
        latest_number: int,
        type_name: str,
    ) -> Iterator[tuple[str, ...]]:
        yield (*declaration.container_path, self.config.latest_name, type_name)
        yield (*declaration.container_path, f"V{latest_number}", type_name)
        if declaration.parent_path and self._parent_aliases_latest(
            declaration, latest_number, type_name
        ):
            yield (*declaration.parent_path, type_name)

    def _parent_aliases_latest(
        self,
        declaration: FamilyDeclaration,
        latest_number: int,
        type_name: str,
    ) -> bool:
        """True if the parent declares ``type_name`` as an alias of the Latest type."""
        parent_type = next((t for t in declaration.parent_types if t.name == type_name), None)
        if parent_type is None or parent_type.alias is None:
            return False
        container = declaration.container_path
        targets = (
            (*container, self.config.latest_name, type_name),
            (*container, f"V{latest_number}", type_name),
        )
        # At least ``Stable.Latest.t``: the parent cannot see Latest unqualified
        return any(_denotes(parent_type.alias.path, target, 3) for target in targets)

    def _names_version(self, expr: TypeExpr) -> int | None:
        for component in expr.path:
            number = parse_version_module_name(component)
            if number is not None:
                return number
        return None

    def _check_codec_adapter(
        self,
        subject: str,
        module: ModuleDecl,
        codec: CodecRef | None,
    ) -> Diagnostic | None:
        recognized = ", ".join(sorted(RECOGNIZED_CODEC_ADAPTERS))
        if codec is None:
            problem = f"'{module.name}' of a binable family declares no codec adapter"
        elif codec.adapter not in RECOGNIZED_CODEC_ADAPTERS:
            problem = f"codec adapter '{codec.adapter}' is not one of: {recognized}"
        elif codec.adapter == "of_binable" and codec.wraps is None:
            problem = "'of_binable' adapter does not name the wrapped binary representation"
        else:
            return None
        return Diagnostic(
            code=DiagnosticCode.UNRECOGNIZED_CODEC_ADAPTER,
            message=problem,
            subject=subject,
            location=(codec.location if codec is not None and codec.location else module.location),
            suggestion=f"Build the codec with one of: {recognized}",
        )

    def _test_obligation(
        self,
        declaration: FamilyDeclaration,
        tests: list[ModuleDecl],
        ordered: list[tuple[int, ModuleDecl]],
    ) -> TestObligation | None:
        if tests:
            test = tests[0]
            return TestObligation(
                module_path=(*declaration.container_path, test.name),
                location=test.location,
            )
        for _, module in ordered:
            for child in module.modules:
                if is_test_module(child, self.config):
                    return TestObligation(
                        module_path=(*declaration.container_path, module.name, child.name),
                        location=child.location,
                    )
        return None


def build_family(
    container: ModuleDecl,
    variant: VersionVariant,
    *,
    parent_path: tuple[str, ...] = (),
    parent_types: tuple[TypeDecl, ...] = (),
    config: CompilerConfig | None = None,
) -> FamilyBuildResult:
    """Build an ordinary family directly from its container module.

    Convenience wrapper around VersionGraphBuilder for callers that already
    hold a container and know its variant.

    Args:
        container: The ``Stable`` module holding ``V1 .. Vn``.
        variant: Declared codec strategy.
        parent_path: Absolute path of the module holding the container.
        parent_types: Types declared by that module.
        config: Naming conventions (defaults apply when None).

    Returns:
        FamilyBuildResult with the family or its diagnostics.
    """
    declaration = FamilyDeclaration(
        container=container,
        parent_path=parent_path,
        parent_types=parent_types,
        kind=FamilyKind.TYPE,
        variant=variant,
    )
    return VersionGraphBuilder(config).build(declaration)


__all__ = [
    "FAMILY_ATTRIBUTES",
    "FamilyBuildResult",
    "FamilyDeclaration",
    "VersionGraphBuilder",
    "build_family",
    "discover_families",
    "family_attribute",
    "is_test_module",
]
