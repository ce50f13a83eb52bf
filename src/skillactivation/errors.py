"""Error types for the skill activation engine.

Load-time problems are collected as data on the registry snapshot rather than
raised; only reload failures propagate, and only to the caller of reload.
"""

from __future__ import annotations

from pathlib import Path


class SkillActivationError(Exception):
    """Base class for all skill activation errors."""


class DescriptorValidationError(SkillActivationError):
    """A descriptor record failed validation and was skipped.

    Attributes:
        index: Position of the record in the loaded sequence, or None when
            the record never got that far (unparseable SKILL.md).
        skill_id: The record's id, if one could be read.
        reason: Human-readable explanation.
        source: File the record came from, if known.
    """

    def __init__(
        self,
        index: int | None,
        skill_id: str | None,
        reason: str,
        source: Path | None = None,
    ) -> None:
        self.index = index
        self.skill_id = skill_id
        self.reason = reason
        self.source = source
        super().__init__(f"{self.location}: {reason}")

    @property
    def location(self) -> str:
        parts = []
        if self.skill_id:
            parts.append(f"skill '{self.skill_id}'")
        if self.index is not None:
            parts.append(f"record {self.index}")
        if self.source is not None:
            parts.append(f"in {self.source}")
        return " ".join(parts) or "unknown record"


class DuplicateIdError(SkillActivationError):
    """Two or more valid descriptors share an id; all of them were rejected."""

    def __init__(self, skill_id: str, indices: list[int]) -> None:
        self.skill_id = skill_id
        self.indices = list(indices)
        super().__init__(
            f"Duplicate skill id '{skill_id}' in records {', '.join(map(str, indices))}"
        )


class UnknownExplicitReference(SkillActivationError):
    """A skill referenced by name in a request is not registered."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"Unknown skill reference: {ref}")


class ReloadError(SkillActivationError):
    """Base class for reload failures. The previous snapshot stays active."""


class ReloadTimeout(ReloadError):
    """Reloading the registry took longer than the configured timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Skill reload timed out after {timeout:.1f}s")


class ReloadSourceError(ReloadError):
    """The descriptor source could not be read or produced no usable skills."""
