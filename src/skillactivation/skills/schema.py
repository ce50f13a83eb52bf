"""Skill descriptor schema definitions.

Defines the immutable SkillDescriptor and the parser that turns a loosely
typed record (parsed YAML frontmatter, a JSON object) into one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from skillactivation.skills.patterns import FilePattern, GlobSyntaxError


class SkillCategory(Enum):
    """Fixed set of skill categories.

    Skills in the same category compete for the same file types; skills in
    different categories are composed together.
    """

    DATA = "data"
    SERVICE = "service"
    UI = "ui"
    INTEGRATION = "integration"
    SECURITY = "security"
    DEPLOYMENT = "deployment"
    TESTING = "testing"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Any) -> SkillCategory:
        if isinstance(value, SkillCategory):
            return value
        if value is None or value == "":
            return cls.GENERAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown category '{value}' (expected one of: {allowed})") from None


@dataclass(frozen=True)
class SkillDescriptor:
    """A registered unit of reference content with activation metadata.

    Attributes:
        id: Unique, stable identifier. Non-empty, no whitespace.
        display_name: Human-readable name. Defaults to the id.
        description: One-line summary, may be empty.
        keywords: Lower-cased prompt keywords.
        file_patterns: Validated globs in declaration order.
        category: Category used for conflict resolution.
        body: The content injected into the composed document.
        dependencies: Lower-cased manifest dependency hints.
        source: Where the descriptor was loaded from, if known.
    """

    id: str
    body: str
    display_name: str = ""
    description: str = ""
    keywords: frozenset[str] = frozenset()
    file_patterns: tuple[FilePattern, ...] = ()
    category: SkillCategory = SkillCategory.GENERAL
    dependencies: frozenset[str] = frozenset()
    source: Path | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Skill id is required")
        if any(ch.isspace() for ch in self.id):
            raise ValueError(f"Skill id must not contain whitespace: {self.id!r}")
        if not isinstance(self.body, str) or not self.body.strip():
            raise ValueError("Skill body must not be empty")
        if not self.display_name:
            object.__setattr__(self, "display_name", self.id)

    @property
    def estimated_size(self) -> int:
        """Length of the body in characters."""
        return len(self.body)

    @property
    def conflict_keys(self) -> frozenset[str]:
        """File types this skill claims to be the guide for."""
        return frozenset(
            key for key in (p.conflict_key for p in self.file_patterns) if key
        )


def _string_list(record: Mapping[str, Any], *keys: str) -> list[str]:
    """Read the first present key as a list of strings.

    A bare string is accepted as a one-element list.
    """
    for key in keys:
        if key not in record or record[key] is None:
            continue
        value = record[key]
        if isinstance(value, str):
            return [value]
        if not isinstance(value, Iterable) or isinstance(value, Mapping):
            raise ValueError(f"'{key}' must be a list of strings")
        items = list(value)
        for item in items:
            if not isinstance(item, str):
                raise ValueError(f"'{key}' must be a list of strings, got {item!r}")
        return items
    return []


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def descriptor_from_record(record: Mapping[str, Any]) -> SkillDescriptor:
    """Build a validated SkillDescriptor from a loosely typed record.

    Accepts camelCase and snake_case field names, and ``name`` as a fallback
    for ``displayName``.

    Raises:
        ValueError: If any field is missing or malformed.
    """
    if not isinstance(record, Mapping):
        raise ValueError(f"Descriptor must be a mapping, got {type(record).__name__}")

    skill_id = record.get("id")
    if not isinstance(skill_id, str):
        raise ValueError("Skill id is required and must be a string")

    body = record.get("body")
    if not isinstance(body, str):
        raise ValueError("Skill body is required and must be a string")

    patterns = []
    for raw in _string_list(record, "filePatterns", "file_patterns", "globs"):
        try:
            patterns.append(FilePattern.parse(raw))
        except GlobSyntaxError as e:
            raise ValueError(f"Invalid file pattern {raw!r}: {e}") from e

    keywords = _string_list(record, "keywords")
    dependencies = _string_list(record, "dependencies", "dependencyHints")
    display_name = _first(record, "displayName", "display_name", "name")
    description = record.get("description")
    source = record.get("source")

    return SkillDescriptor(
        id=skill_id.strip(),
        body=body,
        display_name=str(display_name).strip() if display_name is not None else "",
        description=str(description).strip() if description is not None else "",
        keywords=frozenset(k.strip().lower() for k in keywords if k.strip()),
        file_patterns=tuple(patterns),
        category=SkillCategory.parse(record.get("category")),
        dependencies=frozenset(d.strip().lower() for d in dependencies if d.strip()),
        source=Path(source) if source else None,
    )
