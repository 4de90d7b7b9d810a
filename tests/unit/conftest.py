"""Unit test fixtures: declaration builders and sample compilation units.

Unit tests run without files or services. Declaration trees are built in
memory with the ``decl`` factory fixture; type expressions use the dotted
string shorthand accepted by the declaration model (``"Account.Stable.V1.t"``).
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from stable_schema.schemas.declarations import (
    CodecRef,
    CompilationUnit,
    FunctorParameter,
    ModuleDecl,
    RecordField,
    SourceLocation,
    TypeDecl,
    TypeExpr,
    TypeKind,
    ValueDecl,
)


class DeclarationFactory:
    """Small builders for declaration trees used across unit tests."""

    file = "ledger.ml"

    def __init__(self) -> None:
        self._line = 0

    def loc(self, line: int | None = None) -> SourceLocation:
        if line is None:
            self._line += 1
            line = self._line
        return SourceLocation(file=self.file, line=line, column=2)

    def expr(self, dotted: str, *args: str) -> TypeExpr:
        return TypeExpr(
            path=tuple(dotted.split(".")),
            args=tuple(TypeExpr.model_validate(a) for a in args),
            location=self.loc(),
        )

    def record(self, type_name: str = "t", /, **fields: str | TypeExpr) -> TypeDecl:
        return TypeDecl(
            name=type_name,
            kind=TypeKind.RECORD,
            fields=tuple(
                RecordField(
                    name=field_name,
                    type=t if isinstance(t, TypeExpr) else self.expr(t),
                )
                for field_name, t in fields.items()
            ),
            location=self.loc(),
        )

    def alias(self, name: str, target: str | TypeExpr, **kwargs: Any) -> TypeDecl:
        return TypeDecl(
            name=name,
            kind=TypeKind.ALIAS,
            alias=target if isinstance(target, TypeExpr) else self.expr(target),
            location=self.loc(),
            **kwargs,
        )

    def fn(self, name: str, *params: str | TypeExpr, returns: str | TypeExpr) -> ValueDecl:
        return ValueDecl(
            name=name,
            params=tuple(p if isinstance(p, TypeExpr) else self.expr(p) for p in params),
            returns=returns if isinstance(returns, TypeExpr) else self.expr(returns),
            location=self.loc(),
        )

    def version(
        self,
        number: int,
        *,
        latest: int,
        t: TypeDecl | None = None,
        upgrade: bool = True,
        upgrade_returns: str = "Latest.t",
        codec: CodecRef | None = None,
        values: tuple[ValueDecl, ...] = (),
        types: tuple[TypeDecl, ...] = (),
        modules: tuple[ModuleDecl, ...] = (),
    ) -> ModuleDecl:
        """A ``V<number>`` module declaring ``t`` and, unless latest, ``to_latest``."""
        own = t if t is not None else self.record("t", name="string")
        upgrades: tuple[ValueDecl, ...] = ()
        if upgrade and number != latest:
            upgrades = (self.fn("to_latest", "t", returns=upgrade_returns),)
        return ModuleDecl(
            name=f"V{number}",
            types=(*types, own),
            values=(*upgrades, *values),
            modules=modules,
            codec=codec,
            location=self.loc(),
        )

    def versions(self, count: int, **kwargs: Any) -> tuple[ModuleDecl, ...]:
        return tuple(self.version(n, latest=count, **kwargs) for n in range(1, count + 1))

    def stable(
        self,
        *members: ModuleDecl,
        attribute: str = "versioned",
        name: str = "Stable",
    ) -> ModuleDecl:
        return ModuleDecl(name=name, attributes=(attribute,), modules=members, location=self.loc())

    def tests(self, name: str = "Tests", **kwargs: Any) -> ModuleDecl:
        kwargs.setdefault("location", self.loc())
        return ModuleDecl(name=name, **kwargs)

    def module(self, name: str, *modules: ModuleDecl, **kwargs: Any) -> ModuleDecl:
        kwargs.setdefault("location", self.loc())
        return ModuleDecl(name=name, modules=modules, **kwargs)

    def functor(
        self,
        name: str,
        *modules: ModuleDecl,
        arity: int,
        parameters: tuple[FunctorParameter, ...] = (),
        **kwargs: Any,
    ) -> ModuleDecl:
        return self.module(
            name,
            *modules,
            functor_arity=arity,
            functor_parameters=parameters,
            **kwargs,
        )

    def unit(self, *modules: ModuleDecl, name: str = "ledger") -> CompilationUnit:
        return CompilationUnit(name=name, modules=modules)


@pytest.fixture
def decl() -> DeclarationFactory:
    """Fresh declaration factory (line numbers restart at 1)."""
    return DeclarationFactory()


@pytest.fixture
def account_module(decl: DeclarationFactory) -> ModuleDecl:
    """``Account`` with a compliant two-version family and ordinary API.

    Account.Stable.V1.t = { name : string }
    Account.Stable.V2.t = { name : string; balance : int }
    Account.t = Account.Stable.Latest.t
    Account.create : string -> t
    """
    return decl.module(
        "Account",
        decl.stable(
            decl.version(1, latest=2),
            decl.version(2, latest=2, t=decl.record("t", name="string", balance="int")),
        ),
        types=(decl.alias("t", "Stable.Latest.t"),),
        values=(decl.fn("create", "string", returns="t"),),
    )


@pytest.fixture
def compliant_unit(decl: DeclarationFactory, account_module: ModuleDecl) -> CompilationUnit:
    """Two families where Ledger versions embed Account's Latest type."""
    ledger = decl.module(
        "Ledger",
        decl.stable(
            decl.version(
                1,
                latest=1,
                t=decl.record(
                    "t",
                    owner="Account.Stable.Latest.t",
                    entries=decl.expr("list", "int"),
                ),
            ),
        ),
        types=(decl.alias("t", "Stable.Latest.t"),),
        values=(decl.fn("post", "Account.t", "int", returns="t"),),
    )
    return decl.unit(account_module, ledger)


@pytest.fixture
def span_exporter() -> Generator[Any, None, None]:
    """In-memory span exporter wired into stable_schema's tracer."""
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

    from stable_schema.telemetry.tracing import set_tracer

    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    set_tracer(provider.get_tracer("stable_schema.test"))
    yield exporter
    set_tracer(None)
    exporter.clear()
