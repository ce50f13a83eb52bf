"""Activation matcher: scores every registered skill against a signal.

Scoring is a pure function of (descriptor, signal, weights):

- each file pattern matching an active file adds ``pattern`` weight scaled by
  the file's recency (1.0 for the most recent file, minus ``recency_step``
  per older position, never below ``recency_floor``);
- each skill keyword found in the prompt (case-insensitive substring) adds
  ``keyword`` weight;
- each manifest token equal to one of the skill's dependency hints adds
  ``dependency`` weight;
- an explicitly referenced skill scores EXPLICIT_SCORE and nothing else.

Ties are broken by registration order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from skillactivation.activation.signal import WorkspaceSignal
from skillactivation.skills.registry import SkillRegistry
from skillactivation.skills.schema import SkillDescriptor

if TYPE_CHECKING:
    from skillactivation.config.schema import MatchingConfig

# Outranks any reachable implicit score
EXPLICIT_SCORE = 1_000_000.0


@dataclass(frozen=True)
class MatchWeights:
    """Scoring weights. Defaults make one recent file hit outrank one keyword."""

    pattern: float = 10.0
    keyword: float = 3.0
    dependency: float = 5.0
    recency_step: float = 0.25
    recency_floor: float = 0.25

    def __post_init__(self) -> None:
        for name in ("pattern", "keyword", "dependency", "recency_step", "recency_floor"):
            if getattr(self, name) < 0:
                raise ValueError(f"Weight '{name}' must be non-negative")
        if self.recency_floor > 1:
            raise ValueError("recency_floor must be at most 1.0")

    @classmethod
    def from_config(cls, config: MatchingConfig) -> MatchWeights:
        return cls(
            pattern=config.pattern_weight,
            keyword=config.keyword_weight,
            dependency=config.dependency_weight,
            recency_step=config.recency_step,
            recency_floor=config.recency_floor,
        )

    def recency(self, position: int) -> float:
        """Decay factor for the file at ``position`` in active_files."""
        return max(self.recency_floor, 1.0 - position * self.recency_step)


@dataclass(frozen=True)
class Match:
    """Score of one skill for one signal, with the reasons behind it."""

    skill_id: str
    score: float
    reasons: tuple[str, ...] = ()
    explicit: bool = False
    order: int = 0

    @property
    def sort_key(self) -> tuple[float, int]:
        return (-self.score, self.order)


def split_refs(
    registry: SkillRegistry, refs: Iterable[str]
) -> tuple[list[str], list[str]]:
    """Resolve explicit references to skill ids.

    Returns:
        (resolved skill ids in first-mention order, unknown references)
    """
    resolved: list[str] = []
    unknown: list[str] = []
    for ref in refs:
        skill_id = registry.resolve_ref(ref)
        if skill_id is None:
            unknown.append(ref)
        elif skill_id not in resolved:
            resolved.append(skill_id)
    return resolved, unknown


def score_skill(
    skill: SkillDescriptor,
    signal: WorkspaceSignal,
    weights: MatchWeights,
    order: int = 0,
    explicit: bool = False,
) -> Match:
    """Score a single skill against a signal."""
    if explicit:
        return Match(
            skill_id=skill.id,
            score=EXPLICIT_SCORE,
            reasons=("explicitly referenced",),
            explicit=True,
            order=order,
        )

    score = 0.0
    reasons: list[str] = []

    if skill.file_patterns:
        for position, path in enumerate(signal.active_files):
            factor = weights.recency(position)
            for pattern in skill.file_patterns:
                if pattern.matches(path):
                    score += weights.pattern * factor
                    reasons.append(
                        f"pattern {pattern.pattern!r} matched {path!r} (x{factor:.2f})"
                    )

    prompt = signal.prompt_text.lower()
    if prompt:
        for keyword in sorted(skill.keywords):
            if keyword in prompt:
                score += weights.keyword
                reasons.append(f"keyword {keyword!r} in prompt")

    for dependency in sorted(skill.dependencies & signal.manifest_tokens):
        score += weights.dependency
        reasons.append(f"dependency {dependency!r} in manifest")

    return Match(skill_id=skill.id, score=score, reasons=tuple(reasons), order=order)


def explain(
    registry: SkillRegistry,
    signal: WorkspaceSignal,
    weights: MatchWeights | None = None,
) -> list[Match]:
    """Score every skill, zero scores included, best first."""
    weights = weights or MatchWeights()
    explicit_ids, _ = split_refs(registry, signal.explicit_skill_refs)
    explicit_set = set(explicit_ids)

    matches = [
        score_skill(skill, signal, weights, order=order, explicit=skill.id in explicit_set)
        for order, skill in enumerate(registry.all())
    ]
    matches.sort(key=lambda m: m.sort_key)
    return matches


def match(
    registry: SkillRegistry,
    signal: WorkspaceSignal,
    weights: MatchWeights | None = None,
) -> list[Match]:
    """Skills that scored above zero or were explicitly referenced, best first."""
    return [m for m in explain(registry, signal, weights) if m.explicit or m.score > 0]
