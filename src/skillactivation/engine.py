"""Activation engine: owns the registry snapshot and runs the pipeline.

Each request reads the current snapshot once and uses it throughout, so a
reload that lands mid-request never affects that request. Reload builds the
new snapshot in a worker thread under a timeout and swaps it in with a single
assignment; on any failure the previous snapshot stays active.

Example:
    engine = ActivationEngine.from_config(load_config(project_root="."))
    response = engine.activate(
        ActivationRequest(activeFiles=["app/manifest.json"], promptText="fiori list report")
    )
    print(response.document)
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Union

from skillactivation.activation.composer import compose
from skillactivation.activation.matcher import (
    Match,
    MatchWeights,
    explain,
    match,
    split_refs,
)
from skillactivation.activation.resolver import (
    ConflictKeys,
    default_conflict_keys,
    resolve,
)
from skillactivation.activation.signal import WorkspaceSignal, scan_explicit_refs
from skillactivation.config.schema import Config
from skillactivation.errors import (
    ReloadError,
    ReloadSourceError,
    ReloadTimeout,
    UnknownExplicitReference,
)
from skillactivation.logging import get_logger
from skillactivation.models import (
    ActivationRequest,
    ActivationResponse,
    DiagnosticEntry,
    MatchReport,
)
from skillactivation.sizing import SizeMetric
from skillactivation.skills.loader import SkillSource, SourceSnapshot
from skillactivation.skills.registry import SkillRegistry, load
from skillactivation.skills.schema import SkillDescriptor

log = get_logger("engine")

DescriptorSource = Callable[
    [], Union[SourceSnapshot, Iterable[Union[Mapping[str, Any], SkillDescriptor]]]
]


class ActivationEngine:
    """Selects and composes skills for workspace signals."""

    def __init__(
        self,
        registry: SkillRegistry | None = None,
        *,
        source: DescriptorSource | None = None,
        weights: MatchWeights | None = None,
        budget: int = 16000,
        size_metric: SizeMetric | str = SizeMetric.CHARS,
        scan_prompt_refs: bool = True,
        reload_timeout: float = 10.0,
        reject_on_issues: bool = False,
        conflict_keys: ConflictKeys = default_conflict_keys,
    ) -> None:
        if budget < 0:
            raise ValueError(f"Budget must be non-negative, got {budget}")
        self._registry = registry if registry is not None else SkillRegistry.empty()
        self._lock = threading.Lock()
        self._source = source
        self.weights = weights or MatchWeights()
        self.budget = budget
        self.size_metric = SizeMetric.parse(size_metric)
        self.scan_prompt_refs = scan_prompt_refs
        self.reload_timeout = reload_timeout
        self.reject_on_issues = reject_on_issues
        self._conflict_keys = conflict_keys
        self._reload_callbacks: list[Callable[[SkillRegistry], None]] = []

    @classmethod
    def from_config(cls, config: Config, base_dir: Path | None = None) -> ActivationEngine:
        """Build an engine from config and load its skills.

        The initial load runs under ``config.reload.timeout`` like any reload.

        Raises:
            ReloadSourceError: If the configured skill paths cannot be read.
            ReloadTimeout: If reading them takes longer than the timeout.
        """
        source = SkillSource(config.skills.paths, base_dir=base_dir)
        engine = cls(
            source=source,
            weights=MatchWeights.from_config(config.matching),
            budget=config.composer.budget,
            size_metric=config.composer.size_metric,
            scan_prompt_refs=config.matching.scan_prompt_refs,
            reload_timeout=config.reload.timeout,
            reject_on_issues=config.reload.reject_on_issues,
        )
        if config.skills.paths:
            engine._swap(engine._build_blocking(source, engine.reload_timeout))
        else:
            log.warning("No skill paths configured")
        return engine

    @property
    def registry(self) -> SkillRegistry:
        """The current snapshot. Read once per request."""
        return self._registry

    @property
    def source(self) -> DescriptorSource | None:
        return self._source

    # -- Pipeline ----------------------------------------------------------

    def _signal(
        self, registry: SkillRegistry, request: ActivationRequest
    ) -> tuple[WorkspaceSignal, list[str]]:
        """Build the signal; returns it with the unknown explicit references."""
        refs = [ref for ref in request.explicit_skill_refs if ref.strip()]
        _, unknown = split_refs(registry, refs)
        if self.scan_prompt_refs:
            scanned, _ = split_refs(registry, scan_explicit_refs(request.prompt_text))
            refs.extend(scanned)
        signal = WorkspaceSignal.create(
            active_files=request.active_files,
            manifest_tokens=request.manifest_tokens,
            prompt_text=request.prompt_text,
            explicit_skill_refs=refs,
        )
        return signal, unknown

    def activate(self, request: ActivationRequest) -> ActivationResponse:
        """Run match -> resolve -> compose for one request."""
        registry = self.registry
        signal, unknown = self._signal(registry, request)

        matches = match(registry, signal, self.weights)
        resolution = resolve(
            registry, matches, request.explicit_exclusions, self._conflict_keys
        )
        budget = request.budget if request.budget is not None else self.budget
        composition = compose(registry, resolution.skill_ids, budget, self.size_metric)

        omitted = set(composition.omitted)
        diagnostics: list[DiagnosticEntry] = []
        for m in matches:
            reasons = list(m.reasons)
            if m.skill_id in resolution.dropped:
                reasons.append(f"dropped: {resolution.dropped[m.skill_id]}")
            elif m.skill_id in omitted:
                reasons.append("omitted: over budget")
            elif composition.truncated and m.skill_id in composition.included:
                reasons.append("truncated to fit budget")
            diagnostics.append(DiagnosticEntry(skill_id=m.skill_id, reasons=reasons))
        for ref in unknown:
            error = UnknownExplicitReference(ref)
            log.info("%s", error)
            diagnostics.append(DiagnosticEntry(skill_id=ref, reasons=[str(error)]))

        log.debug(
            "Activated %s (truncated=%s, size=%d/%d, registry v%d)",
            composition.included,
            composition.truncated,
            composition.size,
            budget,
            registry.version,
        )
        return ActivationResponse(
            skill_ids=composition.included,
            document=composition.document,
            truncated=composition.truncated,
            diagnostics=diagnostics,
            omitted_skill_ids=composition.omitted,
            registry_version=registry.version,
        )

    def explain(self, request: ActivationRequest) -> list[MatchReport]:
        """Score every skill for the request, zero scores included."""
        registry = self.registry
        signal, _ = self._signal(registry, request)
        return [_report(m) for m in explain(registry, signal, self.weights)]

    # -- Reload ------------------------------------------------------------

    def _build(self, source: DescriptorSource) -> SkillRegistry:
        """Read the source and validate it into an unversioned snapshot."""
        try:
            produced = source()
        except ReloadError:
            raise
        except Exception as e:
            raise ReloadSourceError(f"Skill source failed: {e}") from e

        if isinstance(produced, SourceSnapshot):
            records, source_issues = list(produced.records), list(produced.issues)
        else:
            try:
                records, source_issues = list(produced), []
            except TypeError as e:
                raise ReloadSourceError(f"Skill source returned {type(produced).__name__}") from e

        registry = load(records, version=0, source_issues=source_issues)
        attempted = len(records) + len(source_issues)
        if attempted and not len(registry):
            raise ReloadSourceError(
                f"No valid skills among {attempted} records "
                f"({len(registry.issues)} issues)"
            )
        if self.reject_on_issues and registry.issues:
            raise ReloadSourceError(
                f"Rejected reload with {len(registry.issues)} descriptor issues: "
                f"{registry.issues[0]}"
            )
        return registry

    def _build_blocking(self, source: DescriptorSource, timeout: float) -> SkillRegistry:
        """``_build`` for callers without an event loop, under the same timeout."""
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="skill-load")
        try:
            return pool.submit(self._build, source).result(timeout=timeout)
        except TimeoutError:
            log.error("Initial skill load timed out after %.1fs", timeout)
            raise ReloadTimeout(timeout) from None
        finally:
            # The worker may still be reading; do not wait for it
            pool.shutdown(wait=False)

    def _swap(self, built: SkillRegistry) -> SkillRegistry:
        with self._lock:
            registry = SkillRegistry(
                built.all(), issues=built.issues, version=self._registry.version + 1
            )
            self._registry = registry
        log.info(
            "Skill registry v%d active: %d skills, %d issues",
            registry.version,
            len(registry),
            len(registry.issues),
        )
        for callback in list(self._reload_callbacks):
            try:
                callback(registry)
            except Exception as e:
                log.warning("Reload callback error: %s", e)
        return registry

    async def reload(
        self,
        source: DescriptorSource | None = None,
        timeout: float | None = None,
    ) -> SkillRegistry:
        """Rebuild the registry from a source and swap it in atomically.

        Args:
            source: Where to read descriptors; defaults to the engine's source.
                A new source replaces the engine's source only on success.
            timeout: Seconds to allow; defaults to ``reload_timeout``.

        Returns:
            The newly active snapshot.

        Raises:
            ReloadTimeout: The source took too long. Previous snapshot kept.
            ReloadSourceError: The source failed or yielded nothing usable.
                Previous snapshot kept.
        """
        source = source or self._source
        if source is None:
            raise ReloadSourceError("No skill source configured")
        timeout = self.reload_timeout if timeout is None else timeout

        try:
            built = await asyncio.wait_for(asyncio.to_thread(self._build, source), timeout)
        except asyncio.TimeoutError:
            log.error(
                "Skill reload timed out after %.1fs, keeping v%d",
                timeout,
                self._registry.version,
            )
            raise ReloadTimeout(timeout) from None
        except ReloadError as e:
            log.error("Skill reload failed, keeping v%d: %s", self._registry.version, e)
            raise

        self._source = source
        return self._swap(built)

    def on_reload(self, callback: Callable[[SkillRegistry], None]) -> Callable[[], None]:
        """Register a callback for successful reloads. Returns an unregister function."""
        self._reload_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._reload_callbacks:
                self._reload_callbacks.remove(callback)

        return unregister


def _report(m: Match) -> MatchReport:
    return MatchReport(
        skill_id=m.skill_id, score=m.score, reasons=list(m.reasons), explicit=m.explicit
    )
