"""Unit tests for the YAML loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from stable_schema.compilation.errors import CompilationException
from stable_schema.compilation.loader import load_config, load_unit
from stable_schema.compilation.stages import CompilationStage

UNIT_YAML = """\
name: ledger
modules:
  - name: Account
    types:
      - name: t
        kind: alias
        alias: Stable.Latest.t
    modules:
      - name: Stable
        attributes: [versioned]
        modules:
          - name: V1
            types:
              - name: t
                kind: record
                fields:
                  - {name: name, type: string}
                  - {name: tags, type: {path: list, args: [string]}}
"""


class TestLoadUnit:
    """Tests for load_unit."""

    @pytest.mark.requirement("LD-001")
    def test_valid_yaml(self, tmp_path: Path) -> None:
        """A YAML unit loads into the declaration model."""
        path = tmp_path / "ledger.yaml"
        path.write_text(UNIT_YAML)

        unit = load_unit(path)

        assert unit.name == "ledger"
        account = unit.modules[0]
        assert account.types[0].alias is not None
        assert account.types[0].alias.path == ("Stable", "Latest", "t")
        v1 = account.modules[0].modules[0]
        tags = v1.types[0].fields[1].type
        assert tags.path == ("list",)
        assert tags.args[0].path == ("string",)

    @pytest.mark.requirement("LD-001")
    def test_json_is_accepted(self, tmp_path: Path) -> None:
        """JSON files load through the same path."""
        path = tmp_path / "ledger.json"
        path.write_text('{"name": "ledger", "modules": []}')

        assert load_unit(path).modules == ()

    @pytest.mark.requirement("LD-002")
    def test_missing_file_is_e001(self, tmp_path: Path) -> None:
        """A missing file raises E001."""
        with pytest.raises(CompilationException) as exc_info:
            load_unit(tmp_path / "missing.yaml")

        assert exc_info.value.code == "E001"
        assert exc_info.value.error.stage is CompilationStage.LOAD

    @pytest.mark.requirement("LD-002")
    def test_invalid_yaml_is_e002(self, tmp_path: Path) -> None:
        """Unparseable YAML raises E002."""
        path = tmp_path / "broken.yaml"
        path.write_text("name: ledger\nmodules: [unclosed\n")

        with pytest.raises(CompilationException) as exc_info:
            load_unit(path)
        assert exc_info.value.code == "E002"

    @pytest.mark.requirement("LD-002")
    def test_non_mapping_is_e002(self, tmp_path: Path) -> None:
        """A top-level list raises E002."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(CompilationException) as exc_info:
            load_unit(path)
        assert exc_info.value.code == "E002"
        assert "got list" in exc_info.value.error.message

    @pytest.mark.requirement("LD-002")
    def test_model_error_is_e003(self, tmp_path: Path) -> None:
        """A declaration that fails validation raises E003 naming the field."""
        path = tmp_path / "bad.yaml"
        path.write_text("name: ledger\nmodules:\n  - name: Account\n    flavour: sweet\n")

        with pytest.raises(CompilationException) as exc_info:
            load_unit(path)

        error = exc_info.value.error
        assert error.code == "E003"
        assert error.context is not None
        assert error.context["field"] == "modules.0.flavour"

    @pytest.mark.requirement("LD-002")
    def test_empty_file_is_e003(self, tmp_path: Path) -> None:
        """An empty file parses as {} and fails on the missing name."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        with pytest.raises(CompilationException) as exc_info:
            load_unit(path)
        assert exc_info.value.code == "E003"


class TestLoadConfig:
    """Tests for load_config."""

    @pytest.mark.requirement("LD-003")
    def test_overrides(self, tmp_path: Path) -> None:
        """Config keys override the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("latest_name: Current\nbuiltin_module_prefixes: [Core_kernel]\n")

        config = load_config(path)

        assert config.latest_name == "Current"
        assert config.container_name == "Stable"
        assert config.builtin_module_prefixes == ("Core_kernel",)

    @pytest.mark.requirement("LD-003")
    def test_unknown_key_is_e003(self, tmp_path: Path) -> None:
        """Unknown config keys are rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("latest: Current\n")

        with pytest.raises(CompilationException) as exc_info:
            load_config(path)
        assert exc_info.value.code == "E003"
