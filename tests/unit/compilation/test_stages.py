"""Unit tests for the compilation pipeline (analyze_unit / compile_unit)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from stable_schema.compilation.errors import SchemaCompilationError
from stable_schema.compilation.stages import CompilationStage, analyze_unit, compile_path, compile_unit
from stable_schema.schemas.diagnostics import DiagnosticCode


class TestCompilationStage:
    """Tests for CompilationStage."""

    @pytest.mark.requirement("CP-001")
    def test_order_and_descriptions(self) -> None:
        """Stages are declared in pipeline order with unique descriptions."""
        assert [s.value for s in CompilationStage] == ["LOAD", "BUILD", "VALIDATE", "SYNTHESIZE"]
        descriptions = {s.description for s in CompilationStage}
        assert len(descriptions) == 4


class TestAnalyzeUnit:
    """Tests for analyze_unit."""

    @pytest.mark.requirement("CP-002")
    def test_compliant_unit_generates_every_family(self, compliant_unit: Any) -> None:
        """A compliant unit passes and generates one entry per family."""
        result = analyze_unit(compliant_unit)

        assert result.passed, [d.format() for d in result.diagnostics]
        assert result.unit_name == "ledger"
        assert [f.name for f in result.families] == ["Account", "Ledger"]
        assert [g.family for g in result.generated] == ["Account", "Ledger"]
        assert result.generated[0].decode_order == (2, 1)

    @pytest.mark.requirement("CP-002")
    def test_any_diagnostic_suppresses_all_output(self, decl: Any, account_module: Any) -> None:
        """One leak anywhere means nothing is generated for the unit."""
        leaky = decl.module("Report", values=(decl.fn("render", "Account.Stable.V1.t", returns="string"),))
        result = analyze_unit(decl.unit(account_module, leaky))

        assert not result.passed
        assert result.generated == ()
        assert [d.code for d in result.diagnostics] == [DiagnosticCode.SPECIFIC_VERSION_LEAK]
        # Account itself built fine
        assert [f.name for f in result.families] == ["Account"]

    @pytest.mark.requirement("CP-002")
    def test_build_and_validate_both_report(self, decl: Any, account_module: Any) -> None:
        """Build failures do not hide rule violations."""
        broken = decl.module("Broken", decl.stable(decl.version(1, latest=3), decl.version(3, latest=3)))
        leaky = decl.module("Report", values=(decl.fn("render", "Account.Stable.V2.t", returns="string"),))
        result = analyze_unit(decl.unit(account_module, broken, leaky))

        assert {d.code for d in result.diagnostics} == {
            DiagnosticCode.NON_CONTIGUOUS_VERSIONS,
            DiagnosticCode.SPECIFIC_VERSION_LEAK,
        }

    @pytest.mark.requirement("CP-002")
    def test_unit_without_families(self, decl: Any) -> None:
        """A unit with no families trivially passes."""
        result = analyze_unit(decl.unit(decl.module("Util", types=(decl.record("t", n="int"),))))

        assert result.passed
        assert result.generated == ()

    @pytest.mark.requirement("CP-003")
    def test_stage_spans(self, compliant_unit: Any, span_exporter: Any) -> None:
        """Each stage runs inside its own child span of schema.compile."""
        analyze_unit(compliant_unit)

        spans = {s.name: s for s in span_exporter.get_finished_spans()}
        assert {"schema.compile", "schema.build", "schema.validate", "schema.synthesize"} <= set(spans)
        root = spans["schema.compile"]
        assert root.attributes["schema.unit"] == "ledger"
        assert root.attributes["schema.passed"] is True
        for name in ("schema.build", "schema.validate", "schema.synthesize"):
            assert spans[name].parent is not None
            assert spans[name].parent.span_id == root.context.span_id

    @pytest.mark.requirement("CP-003")
    def test_failed_pass_skips_synthesize_span(self, decl: Any, span_exporter: Any) -> None:
        """No synthesize span is recorded when diagnostics exist."""
        analyze_unit(decl.unit(decl.module("Account", decl.stable())))

        names = [s.name for s in span_exporter.get_finished_spans()]
        assert "schema.synthesize" not in names
        assert "schema.validate" in names


class TestCompileUnit:
    """Tests for compile_unit and compile_path."""

    @pytest.mark.requirement("CP-004")
    def test_returns_result_when_compliant(self, compliant_unit: Any) -> None:
        """compile_unit returns the passing result."""
        result = compile_unit(compliant_unit)
        assert len(result.generated) == 2

    @pytest.mark.requirement("CP-004")
    def test_raises_with_every_diagnostic(self, decl: Any) -> None:
        """compile_unit raises carrying the full diagnostic list."""
        unit = decl.unit(
            decl.module("Account", decl.stable()),
            decl.module("Ledger", decl.stable()),
        )
        with pytest.raises(SchemaCompilationError) as exc_info:
            compile_unit(unit)

        assert len(exc_info.value.diagnostics) == 2
        assert "Schema compilation failed with 2 diagnostics" in str(exc_info.value)

    @pytest.mark.requirement("CP-004")
    def test_compile_path(self, tmp_path: Path, compliant_unit: Any) -> None:
        """compile_path loads a YAML unit and compiles it."""
        unit_file = tmp_path / "ledger.yaml"
        unit_file.write_text(yaml.safe_dump(compliant_unit.model_dump(mode="json", exclude_none=True)))

        result = compile_path(unit_file)
        assert [g.family for g in result.generated] == ["Account", "Ledger"]

    @pytest.mark.requirement("CP-004")
    def test_compile_path_with_config(self, tmp_path: Path, decl: Any) -> None:
        """A config file changes the naming conventions."""
        unit = decl.unit(decl.module("Account", decl.stable(*decl.versions(2), name="Versions")))
        unit_file = tmp_path / "ledger.yaml"
        unit_file.write_text(yaml.safe_dump(unit.model_dump(mode="json", exclude_none=True)))
        config_file = tmp_path / "config.yaml"
        config_file.write_text("container_name: Versions\n")

        result = compile_path(unit_file, config_file)
        assert result.generated[0].container_path == ("Account", "Versions")
