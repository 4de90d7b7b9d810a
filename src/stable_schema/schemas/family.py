"""Version graph models produced by the builder.

- VersionVariant: plain / asserted / binable codec strategy (tagged union)
- FamilyKind: ordinary versioned type or RPC query/response pair
- UpgradeFunction: Direct ``Vi.t -> Latest.t`` conversion
- TestObligation: Companion test declaration of an asserted family
- SchemaVersion: One numbered, immutable member of a family
- SchemaFamily: The ordered versions of one stable type plus its Latest

A SchemaFamily is created once per compilation pass and never mutated. Its
invariants (non-empty, numbers exactly ``1..n``) are enforced on construction,
so a family value that exists is always well formed. The builder reports
shape problems as diagnostics before it ever constructs one.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stable_schema.schemas.declarations import (
    CodecRef,
    SourceLocation,
    TypeDecl,
    TypeExpr,
    ValueDecl,
)

# Version modules are named V1, V2, ... inside the family container; no leading zeros
VERSION_MODULE_PATTERN = re.compile(r"^V(0|[1-9]\d*)$")

# Recognized codec adapters for binable versions
RECOGNIZED_CODEC_ADAPTERS: frozenset[str] = frozenset({"of_binable", "of_stringable"})

# Call-site adapters every RPC version must define
RPC_ADAPTER_NAMES: tuple[str, ...] = (
    "query_of_caller_model",
    "callee_model_of_query",
    "response_of_callee_model",
    "caller_model_of_response",
)


def parse_version_module_name(name: str) -> int | None:
    """Return the version number encoded in a module name, if any.

    Example:
        >>> parse_version_module_name("V12")
        12
        >>> parse_version_module_name("Latest") is None
        True
    """
    match = VERSION_MODULE_PATTERN.match(name)
    if match is None:
        return None
    return int(match.group(1))


class VersionVariant(str, Enum):
    """How the versions of a family obtain their codecs.

    Attributes:
        PLAIN: Default structural derivation.
        ASSERTED: Structural derivation plus a required companion test.
        BINABLE: Codec built from a recognized adapter pattern.
    """

    PLAIN = "plain"
    ASSERTED = "asserted"
    BINABLE = "binable"


class FamilyKind(str, Enum):
    """What a family versions."""

    TYPE = "type"
    """A single versioned type, conventionally ``t``."""

    RPC = "rpc"
    """An RPC definition versioning ``query`` and ``response`` together."""


class UpgradeFunction(BaseModel):
    """A direct upgrade from one version to the Latest version.

    Upgrades are never chained: ``V1.to_latest`` converts straight to the
    Latest representation even when intermediate versions exist.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Function name")
    type_name: str = Field(..., min_length=1, description="Versioned type being upgraded")
    parameter: TypeExpr = Field(..., description="Parameter type (the version's own type)")
    returns: TypeExpr = Field(..., description="Result type (the Latest type)")
    location: SourceLocation | None = None


class TestObligation(BaseModel):
    """The companion test declaration required by an asserted family."""

    __test__ = False  # not a pytest test class

    model_config = ConfigDict(frozen=True, extra="forbid")

    module_path: tuple[str, ...] = Field(..., min_length=1, description="Path of the test module")
    location: SourceLocation | None = None


class SchemaVersion(BaseModel):
    """One numbered, immutable member of a family.

    Attributes:
        number: Version number (1-based).
        module_path: Absolute path of the ``V<n>`` module.
        types: The versioned type definitions of this version.
        codec: How this version's codec is obtained.
        upgrades: Upgrade functions keyed by versioned type name (empty for Latest).
        adapters: RPC call-site adapters keyed by name (RPC families only).
        location: Where the version module is declared.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    number: int = Field(..., ge=1, description="Version number")
    module_path: tuple[str, ...] = Field(..., min_length=1, description="Absolute module path")
    types: tuple[TypeDecl, ...] = Field(..., min_length=1, description="Versioned types")
    codec: CodecRef = Field(default_factory=CodecRef, description="Codec reference")
    upgrades: dict[str, UpgradeFunction] = Field(
        default_factory=dict, description="Upgrade functions"
    )
    adapters: dict[str, ValueDecl] = Field(default_factory=dict, description="RPC adapters")
    location: SourceLocation | None = None

    @property
    def name(self) -> str:
        return f"V{self.number}"

    def type_decl(self, type_name: str) -> TypeDecl:
        for type_decl in self.types:
            if type_decl.name == type_name:
                return type_decl
        raise KeyError(f"{self.name} has no versioned type '{type_name}'")


class SchemaFamily(BaseModel):
    """The ordered set of versions of one stable type.

    Attributes:
        name: Dotted family name (the path of the module holding the container).
        container_path: Absolute path of the container module (``...Stable``).
        kind: Ordinary type or RPC.
        variant: Codec strategy shared by all versions.
        type_names: Names of the versioned types (``("t",)`` or ``("query", "response")``).
        versions: Versions in ascending number order.
        test_obligation: Companion test (asserted families).
        functor_arities: Arities of enclosing functor bodies, outermost first.
        in_test: True when the family is declared inside a test declaration.
        location: Where the container is declared.

    Example:
        >>> family.latest.number
        3
        >>> [v.number for v in family.versions]
        [1, 2, 3]
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Dotted family name")
    container_path: tuple[str, ...] = Field(..., min_length=1, description="Container module path")
    kind: FamilyKind = Field(default=FamilyKind.TYPE, description="What the family versions")
    variant: VersionVariant = Field(default=VersionVariant.PLAIN, description="Codec strategy")
    type_names: tuple[str, ...] = Field(
        default=("t",), min_length=1, description="Versioned type names"
    )
    versions: tuple[SchemaVersion, ...] = Field(..., description="Versions, ascending")
    test_obligation: TestObligation | None = Field(default=None, description="Companion test")
    functor_arities: tuple[int, ...] = Field(default=(), description="Enclosing functor arities")
    in_test: bool = Field(default=False, description="Declared inside a test")
    location: SourceLocation | None = None

    @model_validator(mode="after")
    def _check_versions(self) -> SchemaFamily:
        numbers = [v.number for v in self.versions]
        if not numbers:
            raise ValueError(f"family '{self.name}' must contain at least one version")
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"family '{self.name}' versions must be exactly 1..n, got {numbers}")
        if self.variant is VersionVariant.ASSERTED and self.test_obligation is None:
            raise ValueError(f"asserted family '{self.name}' requires a test obligation")
        return self

    @property
    def latest(self) -> SchemaVersion:
        return self.versions[-1]

    @property
    def non_latest(self) -> tuple[SchemaVersion, ...]:
        return self.versions[:-1]

    def version(self, number: int) -> SchemaVersion:
        if not 1 <= number <= len(self.versions):
            raise KeyError(f"family '{self.name}' has no version {number}")
        return self.versions[number - 1]


__all__ = [
    "RECOGNIZED_CODEC_ADAPTERS",
    "RPC_ADAPTER_NAMES",
    "VERSION_MODULE_PATTERN",
    "FamilyKind",
    "SchemaFamily",
    "SchemaVersion",
    "TestObligation",
    "UpgradeFunction",
    "VersionVariant",
    "parse_version_module_name",
]
