"""The activation pipeline: signal -> match -> resolve -> compose."""

from skillactivation.activation.composer import (
    Composition,
    compose,
    render_section,
)
from skillactivation.activation.matcher import (
    EXPLICIT_SCORE,
    Match,
    MatchWeights,
    explain,
    match,
    score_skill,
    split_refs,
)
from skillactivation.activation.resolver import (
    Resolution,
    default_conflict_keys,
    resolve,
)
from skillactivation.activation.signal import (
    SignalCollector,
    WorkspaceSignal,
    read_manifest_tokens,
    scan_explicit_refs,
)

__all__ = [
    # Signal
    "SignalCollector",
    "WorkspaceSignal",
    "read_manifest_tokens",
    "scan_explicit_refs",
    # Matcher
    "EXPLICIT_SCORE",
    "Match",
    "MatchWeights",
    "explain",
    "match",
    "score_skill",
    "split_refs",
    # Resolver
    "Resolution",
    "default_conflict_keys",
    "resolve",
    # Composer
    "Composition",
    "compose",
    "render_section",
]
