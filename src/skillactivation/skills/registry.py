"""Immutable, versioned registry of skill descriptors.

A registry snapshot is built once by ``load`` and never changes afterwards.
Reloading builds a new snapshot; see ``skillactivation.engine``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from skillactivation.errors import (
    DescriptorValidationError,
    DuplicateIdError,
    SkillActivationError,
)
from skillactivation.logging import get_logger
from skillactivation.skills.schema import SkillDescriptor, descriptor_from_record

log = get_logger("registry")


class SkillRegistry:
    """A read-only snapshot of validated skills in registration order.

    Do not construct directly; use ``load`` (or ``SkillRegistry.empty``).
    """

    __slots__ = ("_skills", "_by_id", "_order", "_by_name", "_issues", "_version")

    def __init__(
        self,
        skills: Iterable[SkillDescriptor],
        issues: Iterable[SkillActivationError] = (),
        version: int = 1,
    ) -> None:
        self._skills: tuple[SkillDescriptor, ...] = tuple(skills)
        self._by_id = MappingProxyType({s.id: s for s in self._skills})
        self._order = MappingProxyType({s.id: i for i, s in enumerate(self._skills)})
        by_name: dict[str, str] = {}
        for skill in self._skills:
            by_name.setdefault(skill.display_name.lower(), skill.id)
        self._by_name = MappingProxyType(by_name)
        self._issues: tuple[SkillActivationError, ...] = tuple(issues)
        self._version = version

    @classmethod
    def empty(cls, version: int = 0) -> SkillRegistry:
        return cls((), version=version)

    @property
    def version(self) -> int:
        return self._version

    @property
    def issues(self) -> tuple[SkillActivationError, ...]:
        """Validation and duplicate-id problems recorded during load."""
        return self._issues

    def all(self) -> tuple[SkillDescriptor, ...]:
        """All skills in registration order."""
        return self._skills

    def lookup(self, skill_id: str) -> SkillDescriptor | None:
        return self._by_id.get(skill_id)

    def order_of(self, skill_id: str) -> int:
        """Registration index, used as the stable tie-break."""
        return self._order.get(skill_id, len(self._skills))

    def resolve_ref(self, ref: str) -> str | None:
        """Map a reference (id, or display name case-insensitively) to a skill id."""
        ref = ref.strip()
        if not ref:
            return None
        if ref in self._by_id:
            return ref
        lowered = ref.lower()
        for skill in self._skills:
            if skill.id.lower() == lowered:
                return skill.id
        return self._by_name.get(lowered)

    def __len__(self) -> int:
        return len(self._skills)

    def __iter__(self) -> Iterator[SkillDescriptor]:
        return iter(self._skills)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._by_id

    def __repr__(self) -> str:
        return (
            f"SkillRegistry(version={self._version}, skills={len(self._skills)}, "
            f"issues={len(self._issues)})"
        )


def _parse(index: int, record: Any) -> SkillDescriptor | DescriptorValidationError:
    if isinstance(record, SkillDescriptor):
        return record
    raw_id = record.get("id") if isinstance(record, Mapping) else None
    skill_id = raw_id if isinstance(raw_id, str) and raw_id else None
    raw_source = record.get("source") if isinstance(record, Mapping) else None
    try:
        return descriptor_from_record(record)
    except ValueError as e:
        source = Path(raw_source) if isinstance(raw_source, (str, Path)) else None
        return DescriptorValidationError(index, skill_id, str(e), source=source)


def load(
    descriptors: Iterable[Mapping[str, Any] | SkillDescriptor],
    version: int = 1,
    source_issues: Iterable[SkillActivationError] = (),
) -> SkillRegistry:
    """Validate descriptor records and build a registry snapshot.

    Malformed records are skipped with a recorded DescriptorValidationError.
    A valid record whose id is shared by any other record, valid or not, is
    rejected together with the others under a DuplicateIdError.
    Neither stops the load; the issues are available on ``registry.issues``.

    Args:
        descriptors: Records (mappings) or ready-made descriptors, in
            registration order.
        version: Version number stamped on the snapshot.
        source_issues: Problems already found while reading the source
            (e.g. a SKILL.md with broken frontmatter), carried into the
            snapshot's issues.

    Returns:
        The new SkillRegistry.
    """
    issues: list[SkillActivationError] = list(source_issues)
    parsed: list[tuple[int, SkillDescriptor]] = []
    indices_by_id: dict[str, list[int]] = {}

    for index, record in enumerate(descriptors):
        result = _parse(index, record)
        if isinstance(result, DescriptorValidationError):
            log.warning("Skipping invalid skill descriptor: %s", result)
            issues.append(result)
            # A readable id still claims its slot
            if result.skill_id and result.skill_id.strip():
                indices_by_id.setdefault(result.skill_id.strip(), []).append(index)
        else:
            parsed.append((index, result))
            indices_by_id.setdefault(result.id, []).append(index)

    valid_ids = {skill.id for _, skill in parsed}
    duplicates = {
        sid: idx
        for sid, idx in indices_by_id.items()
        if len(idx) > 1 and sid in valid_ids
    }
    for skill_id, indices in duplicates.items():
        error = DuplicateIdError(skill_id, indices)
        log.warning("Rejecting skills: %s", error)
        issues.append(error)

    skills = [skill for _, skill in parsed if skill.id not in duplicates]
    registry = SkillRegistry(skills, issues=issues, version=version)
    log.debug("Loaded %r", registry)
    return registry
