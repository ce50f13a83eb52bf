"""Reading skill descriptor records from disk.

Two source layouts are supported:

- Skill directories: one directory per skill holding a SKILL.md file whose
  YAML frontmatter carries the descriptor fields and whose markdown body is
  the skill body. The id defaults to the directory name.
- Descriptor files: a YAML or JSON file holding a list of records, or a
  mapping with a ``skills`` list.

Records come back loosely typed; validation happens in the registry.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from skillactivation.errors import DescriptorValidationError, ReloadSourceError
from skillactivation.logging import get_logger

log = get_logger("loader")

SKILL_FILENAME = "SKILL.md"
DESCRIPTOR_SUFFIXES = (".yaml", ".yml", ".json")

# YAML frontmatter pattern: starts with ---, ends with ---
_FRONTMATTER_PATTERN = re.compile(
    r"^---\s*\n(.*?)\n---\s*\n?(.*)$",
    re.DOTALL,
)


@dataclass
class SourceSnapshot:
    """Records read from a source plus per-file problems found on the way."""

    records: list[Any] = field(default_factory=list)
    issues: list[DescriptorValidationError] = field(default_factory=list)


def _parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from markdown content.

    Returns:
        Tuple of (frontmatter dict, remaining content).

    Raises:
        ValueError: If frontmatter is malformed or missing.
    """
    match = _FRONTMATTER_PATTERN.match(content.lstrip("\ufeff"))
    if not match:
        raise ValueError("Missing or malformed YAML frontmatter (must start with ---)")

    try:
        frontmatter = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in frontmatter: {e}") from e
    if not isinstance(frontmatter, dict):
        raise ValueError("Frontmatter must be a YAML mapping")
    return frontmatter, match.group(2).strip()


def record_from_skill_file(skill_file: Path) -> dict[str, Any]:
    """Read one SKILL.md into a descriptor record.

    Raises:
        ValueError: If the frontmatter is missing or malformed.
        OSError: If the file cannot be read.
    """
    content = skill_file.read_text(encoding="utf-8")
    frontmatter, body = _parse_frontmatter(content)

    record = dict(frontmatter)
    record.setdefault("id", skill_file.parent.name)
    record["body"] = body
    record["source"] = str(skill_file)
    return record


def read_descriptor_file(path: Path) -> list[Any]:
    """Read a YAML/JSON descriptor list file.

    Raises:
        ReloadSourceError: If the file is unreadable or has the wrong shape.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReloadSourceError(f"Cannot read descriptor file {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ReloadSourceError(f"Cannot parse descriptor file {path}: {e}") from e

    if isinstance(data, dict) and "skills" in data:
        data = data["skills"]
    if data is None:
        return []
    if not isinstance(data, list):
        raise ReloadSourceError(
            f"Descriptor file {path} must hold a list of skills or a 'skills' list"
        )

    records: list[Any] = []
    for item in data:
        if isinstance(item, dict):
            item = dict(item)
            item.setdefault("source", str(path))
        records.append(item)
    return records


def discover_skill_files(directory: Path) -> list[Path]:
    """Find SKILL.md files: the directory's own, or one per sub-directory.

    Sub-directories are visited in name order so registration order is stable.
    """
    own = directory / SKILL_FILENAME
    if own.is_file():
        return [own]
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise ReloadSourceError(f"Cannot list skills directory {directory}: {e}") from e
    return [
        entry / SKILL_FILENAME
        for entry in entries
        if entry.is_dir() and (entry / SKILL_FILENAME).is_file()
    ]


class SkillSource:
    """A configured set of skill paths that can be read repeatedly.

    Example:
        source = SkillSource([".kiro/skills", "shared/skills.yaml"])
        registry = load(source.read().records)
    """

    def __init__(self, paths: Iterable[str | Path], base_dir: Path | None = None) -> None:
        self._base_dir = base_dir
        self._paths = [self._resolve(p) for p in paths]

    def _resolve(self, path: str | Path) -> Path:
        p = Path(path).expanduser()
        if not p.is_absolute() and self._base_dir is not None:
            p = self._base_dir / p
        return p

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def files(self) -> list[Path]:
        """Every file that currently contributes records (for change polling)."""
        found: list[Path] = []
        for path in self._paths:
            if path.is_file():
                found.append(path)
            elif path.is_dir():
                try:
                    found.extend(discover_skill_files(path))
                except ReloadSourceError as e:
                    log.debug("Skipping unlistable path: %s", e)
        return found

    def read(self) -> SourceSnapshot:
        """Read all records from the configured paths, in path order.

        Raises:
            ReloadSourceError: If a configured path is missing or a descriptor
                file cannot be read. A single broken SKILL.md is recorded as
                an issue instead.
        """
        snapshot = SourceSnapshot()
        for path in self._paths:
            if path.is_dir():
                skill_files = discover_skill_files(path)
            elif path.is_file() and path.name == SKILL_FILENAME:
                skill_files = [path]
            elif path.is_file():
                if path.suffix.lower() not in DESCRIPTOR_SUFFIXES:
                    raise ReloadSourceError(f"Unsupported descriptor file type: {path}")
                snapshot.records.extend(read_descriptor_file(path))
                continue
            else:
                raise ReloadSourceError(f"Skill path does not exist: {path}")

            for skill_file in skill_files:
                try:
                    snapshot.records.append(record_from_skill_file(skill_file))
                except (ValueError, OSError) as e:
                    issue = DescriptorValidationError(
                        None, skill_file.parent.name, str(e), source=skill_file
                    )
                    log.warning("Skipping skill: %s", issue)
                    snapshot.issues.append(issue)
        log.debug(
            "Read %d skill records (%d issues) from %d paths",
            len(snapshot.records),
            len(snapshot.issues),
            len(self._paths),
        )
        return snapshot

    __call__ = read

    def __repr__(self) -> str:
        return f"SkillSource({[str(p) for p in self._paths]!r})"
