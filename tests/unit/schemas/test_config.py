"""Unit tests for CompilerConfig."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.family import FamilyKind


class TestCompilerConfig:
    """Tests for CompilerConfig naming conventions."""

    @pytest.mark.requirement("CF-001")
    def test_defaults(self) -> None:
        """Defaults follow the Stable/V<n>/Latest/to_latest convention."""
        config = CompilerConfig()
        assert config.container_name == "Stable"
        assert config.latest_name == "Latest"
        assert config.upgrade_function_name == "to_latest"
        assert config.test_module_name == "Tests"

    @pytest.mark.requirement("CF-001")
    def test_versioned_type_names(self) -> None:
        """Ordinary families version t; RPC families query and response."""
        config = CompilerConfig()
        assert config.versioned_type_names(FamilyKind.TYPE) == ("t",)
        assert config.versioned_type_names(FamilyKind.RPC) == ("query", "response")

    @pytest.mark.requirement("CF-001")
    def test_upgrade_name_for(self) -> None:
        """t upgrades via to_latest; other types via <name>_to_latest."""
        config = CompilerConfig()
        assert config.upgrade_name_for("t") == "to_latest"
        assert config.upgrade_name_for("query") == "query_to_latest"
        assert config.upgrade_name_for("response") == "response_to_latest"

    @pytest.mark.requirement("CF-002")
    def test_is_builtin(self) -> None:
        """Primitives, parameterised builtins and trusted prefixes are builtin."""
        config = CompilerConfig(builtin_module_prefixes=("Core_kernel",))
        assert config.is_builtin(("int",))
        assert config.is_builtin(("list",))
        assert config.is_builtin(("Core_kernel", "Time", "Stable", "V1", "t"))
        assert not config.is_builtin(("Account", "t"))
        assert not config.is_builtin(("t",))
        assert not config.is_builtin(())

    @pytest.mark.requirement("CF-002")
    def test_custom_builtins_replace_defaults(self) -> None:
        """builtin_types can be narrowed from configuration."""
        config = CompilerConfig.model_validate({"builtin_types": ["int"]})
        assert config.is_builtin(("int",))
        assert not config.is_builtin(("string",))

    @pytest.mark.requirement("CF-002")
    def test_unknown_keys_rejected(self) -> None:
        """Unknown configuration keys are rejected."""
        with pytest.raises(ValidationError):
            CompilerConfig.model_validate({"container": "Stable"})
