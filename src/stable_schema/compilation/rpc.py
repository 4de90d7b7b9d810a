"""Version graph building for RPC definitions.

An RPC definition is a family whose versions each hold two versioned types,
``query`` and ``response``, plus four call-site adapters bridging the wire
representation and the internal model:

- query_of_caller_model
- callee_model_of_query
- response_of_callee_model
- caller_model_of_response

The adapters are not upgrade functions. Each of ``query`` and ``response``
still upgrades directly to Latest (``query_to_latest``,
``response_to_latest``) and is linted like any versioned type.
"""

from __future__ import annotations

from stable_schema.compilation.builder import (
    FamilyBuildResult,
    FamilyDeclaration,
    VersionGraphBuilder,
)
from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import ModuleDecl, TypeDecl, ValueDecl
from stable_schema.schemas.diagnostics import Diagnostic, DiagnosticCode
from stable_schema.schemas.family import RPC_ADAPTER_NAMES, FamilyKind, VersionVariant


class RpcFamilyBuilder(VersionGraphBuilder):
    """VersionGraphBuilder for ``versioned_rpc`` containers.

    Versioned types come from CompilerConfig (``query`` and ``response``);
    this builder adds the adapter requirement.
    """

    def check_version_members(
        self,
        declaration: FamilyDeclaration,
        module: ModuleDecl,
    ) -> tuple[dict[str, ValueDecl], list[Diagnostic]]:
        adapters: dict[str, ValueDecl] = {}
        missing: list[str] = []
        for adapter_name in RPC_ADAPTER_NAMES:
            value = module.find_value(adapter_name)
            if value is None:
                missing.append(adapter_name)
            else:
                adapters[adapter_name] = value

        if not missing:
            return adapters, []
        diagnostic = Diagnostic(
            code=DiagnosticCode.MISSING_RPC_ADAPTER,
            message=f"'{module.name}' is missing adapter(s): {', '.join(missing)}",
            subject=f"{declaration.name}.{module.name}",
            location=module.location,
            suggestion="Every RPC version defines all four caller/callee model adapters",
        )
        return adapters, [diagnostic]


def build_rpc(
    container: ModuleDecl,
    *,
    parent_path: tuple[str, ...] = (),
    parent_types: tuple[TypeDecl, ...] = (),
    config: CompilerConfig | None = None,
) -> FamilyBuildResult:
    """Build an RPC family directly from its container module.

    Args:
        container: The container module holding ``V1 .. Vn``.
        parent_path: Absolute path of the module holding the container.
        parent_types: Types declared by that module.
        config: Naming conventions (defaults apply when None).

    Returns:
        FamilyBuildResult with the RPC family or its diagnostics.
    """
    declaration = FamilyDeclaration(
        container=container,
        parent_path=parent_path,
        parent_types=parent_types,
        kind=FamilyKind.RPC,
        variant=VersionVariant.PLAIN,
    )
    return RpcFamilyBuilder(config).build(declaration)


def builder_for(kind: FamilyKind, config: CompilerConfig | None = None) -> VersionGraphBuilder:
    """Return the builder responsible for a family kind."""
    if kind is FamilyKind.RPC:
        return RpcFamilyBuilder(config)
    return VersionGraphBuilder(config)


__all__ = ["RpcFamilyBuilder", "build_rpc", "builder_for"]
