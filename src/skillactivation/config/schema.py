"""Configuration schema dataclasses for the skill activation engine.

Defines the structure of configuration at all levels (system, user, project).
All fields carry defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SkillsConfig:
    """Where skill descriptors are read from.

    Each entry is either a directory holding one sub-directory per skill
    (each with a SKILL.md), a single skill directory, or a YAML/JSON file
    containing a list of descriptor records.

    Example config.yaml:
        skills:
          paths:
            - ".kiro/skills"
            - "~/shared/skills.yaml"
    """

    paths: list[str] = field(default_factory=list)


@dataclass
class MatchingConfig:
    """Scoring weights for the activation matcher.

    A pattern hit on the most recent file is worth pattern_weight; each older
    file loses recency_step of that, down to recency_floor.
    """

    pattern_weight: float = 10.0
    keyword_weight: float = 3.0
    dependency_weight: float = 5.0
    recency_step: float = 0.25
    recency_floor: float = 0.25
    scan_prompt_refs: bool = True  # Treat #name / @name mentions as explicit refs


@dataclass
class ComposerConfig:
    """Content composer configuration."""

    budget: int = 16000
    size_metric: str = "chars"  # "chars" or "tokens"


@dataclass
class ReloadConfig:
    """Registry reload behaviour."""

    timeout: float = 10.0  # Seconds before a reload is abandoned
    poll_interval: float = 2.0  # Skill watcher polling interval
    reject_on_issues: bool = False  # Refuse a reload if any descriptor is invalid


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, wins over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    skills: SkillsConfig = field(default_factory=SkillsConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    composer: ComposerConfig = field(default_factory=ComposerConfig)
    reload: ReloadConfig = field(default_factory=ReloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Extension point for future config sections
    extra: dict[str, Any] = field(default_factory=dict)
