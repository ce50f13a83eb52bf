"""Root pytest configuration for all tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from skillactivation.config import reset_config
from skillactivation.skills import SkillRegistry, load


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep user config and SA_* environment out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    for var in ("SA_LOG", "SA_BUDGET", "SA_SKILLS_PATH"):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def scenario_records() -> list[dict[str, Any]]:
    """A CDS data skill, a Fiori keyword skill and a manifest.json UI skill."""
    return [
        {
            "id": "A",
            "displayName": "CDS modeling",
            "filePatterns": ["**/*.cds"],
            "category": "data",
            "body": "Model entities with CDS.",
        },
        {
            "id": "B",
            "displayName": "Fiori elements",
            "keywords": ["fiori"],
            "category": "ui",
            "body": "Use Fiori elements floorplans.",
        },
        {
            "id": "C",
            "displayName": "App descriptor",
            "filePatterns": ["**/manifest.json"],
            "category": "ui",
            "body": "Configure routing in manifest.json.",
        },
    ]


@pytest.fixture
def scenario_registry(scenario_records: list[dict[str, Any]]) -> SkillRegistry:
    return load(scenario_records)


def _write_skill(root: Path, dirname: str, body: str = "Skill body.", **frontmatter: Any) -> Path:
    skill_dir = root / dirname
    skill_dir.mkdir(parents=True, exist_ok=True)
    skill_file = skill_dir / "SKILL.md"
    header = yaml.safe_dump(frontmatter, sort_keys=False)
    skill_file.write_text(f"---\n{header}---\n\n{body}\n", encoding="utf-8")
    return skill_file


@pytest.fixture
def write_skill() -> Callable[..., Path]:
    """Create ``root/dirname/SKILL.md`` with the given frontmatter and body."""
    return _write_skill


@pytest.fixture
def scenario_skills_dir(tmp_path: Path, write_skill: Callable[..., Path]) -> Path:
    """The scenario skills laid out as SKILL.md directories, in A, B, C order."""
    root = tmp_path / "skills"
    write_skill(
        root, "a-cds", "Model entities with CDS.",
        id="A", name="CDS modeling", category="data", filePatterns=["**/*.cds"],
    )
    write_skill(
        root, "b-fiori", "Use Fiori elements floorplans.",
        id="B", name="Fiori elements", category="ui", keywords=["fiori"],
    )
    write_skill(
        root, "c-manifest", "Configure routing in manifest.json.",
        id="C", name="App descriptor", category="ui", filePatterns=["**/manifest.json"],
    )
    return root
