"""Content composer: renders ordered skills into one bounded document.

Sections appear in priority order so the most relevant material comes first.
Whole sections are added while they fit; the first one that does not fit
ends the document and everything after it is omitted. Only when nothing fits
at all is the top section cut down, so the document still respects the
budget exactly.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from skillactivation.logging import get_logger
from skillactivation.sizing import SizeMetric, measure, truncate
from skillactivation.skills.registry import SkillRegistry
from skillactivation.skills.schema import SkillDescriptor

log = get_logger("composer")

SECTION_SEPARATOR = "\n"


def render_section(skill: SkillDescriptor) -> str:
    """Labeled section for one skill."""
    return f"## {skill.display_name} ({skill.id})\n\n{skill.body.strip()}\n"


@dataclass
class Composition:
    """The assembled document and what went into it."""

    document: str = ""
    truncated: bool = False
    included: list[str] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)
    size: int = 0


def compose(
    registry: SkillRegistry,
    ordered_ids: Iterable[str],
    budget: int,
    metric: SizeMetric = SizeMetric.CHARS,
) -> Composition:
    """Assemble skill bodies into a document no larger than ``budget``.

    Args:
        registry: Snapshot to read skill bodies from.
        ordered_ids: Skill ids, highest priority first.
        budget: Maximum document size, measured with ``metric``.
        metric: Characters (default) or tiktoken tokens.

    Returns:
        The Composition.

    Raises:
        ValueError: If budget is negative.
    """
    if budget < 0:
        raise ValueError(f"Budget must be non-negative, got {budget}")

    result = Composition()
    ids = list(ordered_ids)

    for position, skill_id in enumerate(ids):
        skill = registry.lookup(skill_id)
        if skill is None:
            log.warning("Cannot compose unknown skill %s", skill_id)
            continue

        section = render_section(skill)
        candidate = (
            result.document + SECTION_SEPARATOR + section if result.document else section
        )
        if measure(candidate, metric) <= budget:
            result.document = candidate
            result.included.append(skill_id)
            continue

        remaining = [sid for sid in ids[position:] if registry.lookup(sid) is not None]
        if not result.included:
            result.document = truncate(section, budget, metric)
            result.truncated = True
            if result.document:
                result.included.append(skill_id)
                remaining = remaining[1:]
            log.debug("Truncated %s to fit budget %d", skill_id, budget)
        result.omitted = remaining
        if remaining:
            log.debug("Omitted over budget: %s", ", ".join(remaining))
        break

    result.size = measure(result.document, metric)
    return result
