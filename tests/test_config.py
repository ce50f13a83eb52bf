"""Tests for the configuration module."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest

from skillactivation.config import (
    Config,
    get_config,
    load_config,
    reset_config,
)
from skillactivation.config.loader import dict_to_config, env_overrides
from skillactivation.config.merge import deep_merge, merge_configs
from skillactivation.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        """Test that override values replace base values."""
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test that nested dicts are recursively merged."""
        base = {"matching": {"pattern_weight": 10, "keyword_weight": 3}}
        override = {"matching": {"keyword_weight": 1}}
        result = deep_merge(base, override)
        assert result["matching"] == {"pattern_weight": 10, "keyword_weight": 1}

    def test_none_does_not_override(self) -> None:
        """Test that None values in override don't replace base values."""
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        """Test that lists (skill paths) are replaced, not concatenated."""
        base = {"skills": {"paths": ["a", "b"]}}
        override = {"skills": {"paths": ["c"]}}
        assert deep_merge(base, override)["skills"]["paths"] == ["c"]

    def test_base_not_mutated(self) -> None:
        base = {"composer": {"budget": 100}}
        deep_merge(base, {"composer": {"budget": 5}})
        assert base == {"composer": {"budget": 100}}

    def test_merge_configs_multiple(self) -> None:
        """Test merging multiple configs in order, skipping empty layers."""
        result = merge_configs({"a": 1, "b": 2}, {}, {"b": 3}, {"c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()
        assert path is not None
        assert "ProgramData" in str(path)
        assert "skillactivation" in str(path)

    def test_windows_user_path_missing_appdata(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.delenv("APPDATA", raising=False)
        assert get_user_config_path() is None

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/skillactivation/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config path respects XDG_CONFIG_HOME."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")

        path = get_user_config_path()
        assert path == Path("/home/test/.config-custom/skillactivation/config.yaml")

    def test_project_config_path(self) -> None:
        path = get_project_config_path("/home/user/myproject")
        assert path == Path("/home/user/myproject/.sa/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that config paths come lowest priority first."""
        monkeypatch.setattr(sys, "platform", "linux")

        paths = get_config_paths(project_root="/project")
        assert len(paths) == 3
        assert "etc" in paths[0].parts
        assert "skillactivation" in paths[1].parts
        assert paths[2] == Path("/project/.sa/config.yaml")

    def test_no_project_root(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert len(get_config_paths()) == 2


class TestDictToConfig:
    """Test conversion of merged dicts to typed config."""

    def test_defaults(self) -> None:
        config = dict_to_config({})
        assert config.skills.paths == []
        assert config.matching.pattern_weight == 10.0
        assert config.composer.budget == 16000
        assert config.composer.size_metric == "chars"
        assert config.reload.timeout == 10.0
        assert config.logging.level is None

    def test_all_sections(self) -> None:
        config = dict_to_config(
            {
                "skills": {"paths": ".kiro/skills"},
                "matching": {"keyword_weight": "4", "scan_prompt_refs": False},
                "composer": {"budget": 2000, "size_metric": "TOKENS"},
                "reload": {"timeout": 2, "reject_on_issues": True},
                "logging": {"level": "DEBUG", "verbose": "2"},
            }
        )
        assert config.skills.paths == [".kiro/skills"]
        assert config.matching.keyword_weight == 4.0
        assert config.matching.scan_prompt_refs is False
        assert config.composer.budget == 2000
        assert config.composer.size_metric == "tokens"
        assert config.reload.reject_on_issues is True
        assert config.logging.verbose == 2

    def test_bad_values_fall_back(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="skillactivation")
        config = dict_to_config(
            {
                "matching": {"pattern_weight": "lots"},
                "composer": {"size_metric": "words"},
                "reload": ["not", "a", "mapping"],
            }
        )
        assert config.matching.pattern_weight == 10.0
        assert config.composer.size_metric == "chars"
        assert config.reload.timeout == 10.0
        assert "size_metric" in caplog.text

    def test_extra_fields_preserved(self) -> None:
        config = dict_to_config({"custom_field": "custom_value", "nested": {"field": 1}})
        assert config.extra == {"custom_field": "custom_value", "nested": {"field": 1}}


class TestConfigLoading:
    """Test configuration loading from files and environment."""

    @pytest.fixture
    def temp_config_dir(self, tmp_path: Path) -> Path:
        """Create a temporary project config directory."""
        config_dir = tmp_path / ".sa"
        config_dir.mkdir()
        return config_dir

    def test_load_project_config(self, temp_config_dir: Path) -> None:
        (temp_config_dir / "config.yaml").write_text(
            """
skills:
  paths:
    - .kiro/skills
composer:
  budget: 4000
""",
            encoding="utf-8",
        )
        config = load_config(project_root=temp_config_dir.parent)
        assert config.skills.paths == [".kiro/skills"]
        assert config.composer.budget == 4000

    def test_project_overrides_user(self, temp_config_dir: Path) -> None:
        user_file = get_user_config_path()
        assert user_file is not None
        user_file.parent.mkdir(parents=True, exist_ok=True)
        user_file.write_text(
            "composer:\n  budget: 100\nmatching:\n  keyword_weight: 7\n", encoding="utf-8"
        )
        (temp_config_dir / "config.yaml").write_text(
            "composer:\n  budget: 200\n", encoding="utf-8"
        )

        config = load_config(project_root=temp_config_dir.parent)
        assert config.composer.budget == 200
        assert config.matching.keyword_weight == 7.0

    def test_explicit_config_file_wins_over_project(
        self, temp_config_dir: Path, tmp_path: Path
    ) -> None:
        (temp_config_dir / "config.yaml").write_text(
            "composer:\n  budget: 200\n", encoding="utf-8"
        )
        extra = tmp_path / "ci.yaml"
        extra.write_text("composer:\n  budget: 300\n", encoding="utf-8")

        config = load_config(project_root=tmp_path, config_file=extra)
        assert config.composer.budget == 300

    def test_env_overrides_files(
        self, temp_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (temp_config_dir / "config.yaml").write_text(
            "composer:\n  budget: 200\nskills:\n  paths: [a]\n", encoding="utf-8"
        )
        monkeypatch.setenv("SA_BUDGET", "999")
        monkeypatch.setenv("SA_SKILLS_PATH", os.pathsep.join(["x", "y"]))
        monkeypatch.setenv("SA_LOG", "/tmp/sa.log")

        config = load_config(project_root=temp_config_dir.parent)
        assert config.composer.budget == 999
        assert config.skills.paths == ["x", "y"]
        assert config.logging.file == "/tmp/sa.log"

    def test_non_integer_budget_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SA_BUDGET", "big")
        assert env_overrides() == {}

    def test_invalid_yaml_uses_defaults(self, temp_config_dir: Path) -> None:
        """Test that invalid YAML falls back to defaults."""
        (temp_config_dir / "config.yaml").write_text("invalid: yaml: :", encoding="utf-8")

        config = load_config(project_root=temp_config_dir.parent)
        assert config.composer.budget == 16000

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(project_root=tmp_path)
        assert isinstance(config, Config)
        assert config.skills.paths == []


class TestConfigCaching:
    """Test config caching behavior."""

    def test_get_config_caches(self) -> None:
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        config1 = get_config()
        reset_config()
        assert get_config() is not config1

    def test_project_config_not_cached(self, tmp_path: Path) -> None:
        """Test that project-specific config is not globally cached."""
        project_config = load_config(project_root=tmp_path)
        assert project_config is not get_config()
