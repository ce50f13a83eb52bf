"""Priority resolver: turns matches into the final, deduplicated skill order.

Rules, applied in order:

1. Drop every excluded skill. Nothing later brings it back.
2. Within a category, two skills claiming the same file type (see
   ``conflict_key``) cannot both survive; the higher-ranked one wins.
   Explicitly referenced skills are never dropped by this rule.
3. Sort the survivors by score, highest first, ties by registration order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from skillactivation.activation.matcher import Match
from skillactivation.logging import get_logger
from skillactivation.skills.registry import SkillRegistry
from skillactivation.skills.schema import SkillCategory, SkillDescriptor

log = get_logger("resolver")

ConflictKeys = Callable[[SkillDescriptor], Iterable[str]]


def default_conflict_keys(skill: SkillDescriptor) -> frozenset[str]:
    return skill.conflict_keys


@dataclass
class Resolution:
    """Outcome of resolving a list of matches."""

    skill_ids: list[str] = field(default_factory=list)
    scores: dict[str, float] = field(default_factory=dict)
    dropped: dict[str, str] = field(default_factory=dict)  # skill id -> reason


def resolve(
    registry: SkillRegistry,
    matches: Iterable[Match],
    explicit_exclusions: Iterable[str] = (),
    conflict_keys: ConflictKeys = default_conflict_keys,
) -> Resolution:
    """Order and deduplicate matched skills.

    Args:
        registry: The snapshot the matches were computed against.
        matches: Matches from the activation matcher.
        explicit_exclusions: Skill ids (or display names) the caller rejected.
        conflict_keys: Which file types a skill claims; override to change the
            conflict relation.

    Returns:
        The Resolution, with skill ids in final order.
    """
    resolution = Resolution()

    excluded: set[str] = set()
    for ref in explicit_exclusions:
        skill_id = registry.resolve_ref(ref)
        if skill_id is not None:
            excluded.add(skill_id)

    ranked = sorted(matches, key=lambda m: m.sort_key)

    # category -> file type -> skill id that claimed it
    claims: dict[SkillCategory, dict[str, str]] = {}
    survivors: list[Match] = []

    for m in ranked:
        if m.skill_id in excluded:
            resolution.dropped[m.skill_id] = "excluded by request"
            continue

        skill = registry.lookup(m.skill_id)
        if skill is None:
            log.debug("Ignoring match for unregistered skill %s", m.skill_id)
            continue

        keys = sorted(conflict_keys(skill))
        category_claims = claims.setdefault(skill.category, {})
        clash = next((k for k in keys if k in category_claims), None)
        if clash is not None and not m.explicit:
            winner = category_claims[clash]
            resolution.dropped[m.skill_id] = (
                f"conflicts with '{winner}' on '{clash}' in category "
                f"'{skill.category.value}'"
            )
            log.debug("Dropping %s: %s", m.skill_id, resolution.dropped[m.skill_id])
            continue

        for key in keys:
            category_claims.setdefault(key, m.skill_id)
        survivors.append(m)

    # Survivors keep rank order
    resolution.skill_ids = [m.skill_id for m in survivors]
    resolution.scores = {m.skill_id: m.score for m in survivors}
    return resolution
