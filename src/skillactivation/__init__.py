"""skillactivation: select and compose context skills from workspace signals."""

__version__ = "0.1.0"

# Public API
from skillactivation.activation import (
    Composition,
    Match,
    MatchWeights,
    Resolution,
    SignalCollector,
    WorkspaceSignal,
    compose,
    explain,
    match,
    read_manifest_tokens,
    resolve,
    scan_explicit_refs,
)
from skillactivation.config import Config, get_config, load_config
from skillactivation.engine import ActivationEngine
from skillactivation.errors import (
    DescriptorValidationError,
    DuplicateIdError,
    ReloadError,
    ReloadSourceError,
    ReloadTimeout,
    SkillActivationError,
    UnknownExplicitReference,
)
from skillactivation.models import (
    ActivationRequest,
    ActivationResponse,
    DiagnosticEntry,
    MatchReport,
)
from skillactivation.sizing import SizeMetric
from skillactivation.skills import (
    SkillCategory,
    SkillDescriptor,
    SkillRegistry,
    SkillSource,
    load,
)
from skillactivation.watcher import SkillWatcher

__all__ = [
    # Main entry points
    "ActivationEngine",
    "ActivationRequest",
    "ActivationResponse",
    "DiagnosticEntry",
    "MatchReport",
    "SkillWatcher",
    # Skills
    "SkillCategory",
    "SkillDescriptor",
    "SkillRegistry",
    "SkillSource",
    "load",
    # Pipeline
    "WorkspaceSignal",
    "SignalCollector",
    "Match",
    "MatchWeights",
    "Resolution",
    "Composition",
    "SizeMetric",
    "match",
    "explain",
    "resolve",
    "compose",
    "read_manifest_tokens",
    "scan_explicit_refs",
    # Config
    "Config",
    "load_config",
    "get_config",
    # Errors
    "SkillActivationError",
    "DescriptorValidationError",
    "DuplicateIdError",
    "UnknownExplicitReference",
    "ReloadError",
    "ReloadTimeout",
    "ReloadSourceError",
]
