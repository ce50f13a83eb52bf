"""Tests for the activation engine: the full pipeline and hot reload."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from skillactivation.config import Config
from skillactivation.config.schema import ComposerConfig, ReloadConfig, SkillsConfig
from skillactivation.engine import ActivationEngine
from skillactivation.errors import ReloadSourceError, ReloadTimeout
from skillactivation.models import ActivationRequest
from skillactivation.skills import SkillRegistry, SkillSource, load


@pytest.fixture
def engine(scenario_registry: SkillRegistry) -> ActivationEngine:
    return ActivationEngine(scenario_registry)


def scenario_request(**overrides: Any) -> ActivationRequest:
    data: dict[str, Any] = {
        "activeFiles": ["app/manifest.json"],
        "promptText": "build a fiori list report",
    }
    data.update(overrides)
    return ActivationRequest.model_validate(data)


class TestActivate:
    """Test match -> resolve -> compose through the engine."""

    def test_scenario(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request())

        assert response.skill_ids == ["C", "B"]
        assert not response.truncated
        assert response.document.startswith("## App descriptor (C)")
        assert "## Fiori elements (B)" in response.document
        assert "Model entities" not in response.document
        assert response.registry_version == 1

    def test_deterministic(self, engine: ActivationEngine) -> None:
        request = scenario_request(activeFiles=["app/manifest.json", "db/schema.cds"])
        assert engine.activate(request) == engine.activate(request)

    def test_pattern_beats_keyword(self, engine: ActivationEngine) -> None:
        response = engine.activate(
            ActivationRequest(active_files=["db/schema.cds"], prompt_text="fiori")
        )
        assert response.skill_ids == ["A", "B"]

    def test_conflict_dedup(self) -> None:
        engine = ActivationEngine(
            load(
                [
                    {"id": "one", "filePatterns": ["**/manifest.json"], "category": "ui",
                     "keywords": ["report"], "body": "One."},
                    {"id": "two", "filePatterns": ["**/manifest.json"], "category": "ui",
                     "body": "Two."},
                ]
            )
        )
        response = engine.activate(scenario_request())

        assert response.skill_ids == ["one"]
        reasons = {d.skill_id: d.reasons for d in response.diagnostics}
        assert reasons["two"][-1] == (
            "dropped: conflicts with 'one' on 'manifest.json' in category 'ui'"
        )

    def test_budget_from_request(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request(budget=20))

        assert response.truncated
        assert len(response.document) == 20
        assert response.skill_ids == ["C"]
        assert response.omitted_skill_ids == ["B"]
        reasons = {d.skill_id: d.reasons for d in response.diagnostics}
        assert reasons["C"][-1] == "truncated to fit budget"
        assert reasons["B"][-1] == "omitted: over budget"

    def test_budget_never_exceeded(self, scenario_registry: SkillRegistry) -> None:
        for budget in (0, 10, 50, 60, 100, 1000):
            engine = ActivationEngine(scenario_registry, budget=budget)
            response = engine.activate(scenario_request())
            assert len(response.document) <= budget

    def test_explicit_override_comes_first(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request(explicitSkillRefs=["A"]))
        assert response.skill_ids == ["A", "C", "B"]

    def test_explicit_ref_in_prompt(self, engine: ActivationEngine) -> None:
        response = engine.activate(
            scenario_request(promptText="use #A for the fiori list report")
        )
        assert response.skill_ids[0] == "A"

    def test_prompt_scanning_can_be_disabled(self, scenario_registry: SkillRegistry) -> None:
        engine = ActivationEngine(scenario_registry, scan_prompt_refs=False)
        response = engine.activate(scenario_request(promptText="use #A"))
        assert "A" not in response.skill_ids

    def test_exclusion_beats_explicit(self, engine: ActivationEngine) -> None:
        response = engine.activate(
            scenario_request(explicitSkillRefs=["A"], explicitExclusions=["A", "B"])
        )
        assert response.skill_ids == ["C"]
        assert "Model entities" not in response.document

    def test_unknown_explicit_ref_reported(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request(explicitSkillRefs=["ghost"]))

        assert response.skill_ids == ["C", "B"]
        entry = response.diagnostics[-1]
        assert entry.skill_id == "ghost"
        assert entry.reasons == ["Unknown skill reference: ghost"]

    def test_blank_explicit_refs_ignored(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request(explicitSkillRefs=["", "   "]))

        assert response.skill_ids == ["C", "B"]
        assert [d.skill_id for d in response.diagnostics] == ["C", "B"]
        for entry in response.diagnostics:
            assert not any("Unknown skill reference" in r for r in entry.reasons)

    def test_nested_extension_pattern(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request(activeFiles=["db/schema.cds"], promptText=""))
        assert response.skill_ids == ["A"]
        assert "Model entities with CDS." in response.document

    def test_unknown_prompt_mention_ignored(self, engine: ActivationEngine) -> None:
        response = engine.activate(scenario_request(promptText="ping @alice about fiori"))
        assert all(d.skill_id != "alice" for d in response.diagnostics)

    def test_empty_registry(self) -> None:
        response = ActivationEngine().activate(scenario_request())
        assert response.skill_ids == []
        assert response.document == ""
        assert response.registry_version == 0

    def test_wire_format(self, engine: ActivationEngine) -> None:
        data = engine.activate(scenario_request()).model_dump(by_alias=True)
        assert data["skillIds"] == ["C", "B"]
        assert {"document", "truncated", "diagnostics", "omittedSkillIds"} <= set(data)

    def test_request_rejects_negative_budget(self) -> None:
        with pytest.raises(ValueError):
            ActivationRequest(budget=-1)

    def test_explain(self, engine: ActivationEngine) -> None:
        reports = engine.explain(scenario_request())
        assert [r.skill_id for r in reports] == ["C", "B", "A"]
        assert reports[-1].score == 0
        assert reports[0].reasons == [
            "pattern '**/manifest.json' matched 'app/manifest.json' (x1.00)"
        ]


class TestFromConfig:
    """Test building an engine from config."""

    def test_loads_configured_paths(self, tmp_path: Path, scenario_skills_dir: Path) -> None:
        config = Config(
            skills=SkillsConfig(paths=["skills"]),
            composer=ComposerConfig(budget=5000),
        )
        engine = ActivationEngine.from_config(config, base_dir=tmp_path)

        assert [s.id for s in engine.registry.all()] == ["A", "B", "C"]
        assert engine.registry.version == 1
        assert engine.budget == 5000
        assert engine.activate(scenario_request()).skill_ids == ["C", "B"]

    def test_no_paths_gives_empty_engine(self) -> None:
        engine = ActivationEngine.from_config(Config())
        assert len(engine.registry) == 0

    def test_missing_path_raises(self, tmp_path: Path) -> None:
        config = Config(skills=SkillsConfig(paths=["nowhere"]))
        with pytest.raises(ReloadSourceError):
            ActivationEngine.from_config(config, base_dir=tmp_path)

    def test_reject_on_issues(
        self, tmp_path: Path, scenario_skills_dir: Path, write_skill: Callable[..., Path]
    ) -> None:
        write_skill(scenario_skills_dir, "d-bad", "Body.", id="D", category="nonsense")
        config = Config(
            skills=SkillsConfig(paths=["skills"]),
            reload=ReloadConfig(reject_on_issues=True),
        )
        with pytest.raises(ReloadSourceError, match="descriptor issues"):
            ActivationEngine.from_config(config, base_dir=tmp_path)

    def test_initial_load_timeout(
        self, tmp_path: Path, scenario_skills_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        release = threading.Event()
        original = SkillSource.read

        def slow_read(self: SkillSource) -> Any:
            release.wait(2.0)
            return original(self)

        monkeypatch.setattr(SkillSource, "__call__", slow_read)
        config = Config(
            skills=SkillsConfig(paths=["skills"]),
            reload=ReloadConfig(timeout=0.05),
        )
        try:
            with pytest.raises(ReloadTimeout):
                ActivationEngine.from_config(config, base_dir=tmp_path)
        finally:
            release.set()


class TestReload:
    """Test hot reload of the registry snapshot."""

    @pytest.mark.asyncio
    async def test_reload_swaps_snapshot(
        self, engine: ActivationEngine, scenario_records: list[dict[str, Any]]
    ) -> None:
        new_records = scenario_records + [
            {"id": "D", "keywords": ["report"], "category": "general", "body": "D body."}
        ]
        registry = await engine.reload(lambda: new_records)

        assert registry.version == 2
        assert engine.registry is registry
        assert "D" in engine.activate(scenario_request()).skill_ids

    @pytest.mark.asyncio
    async def test_reload_from_source(
        self, scenario_skills_dir: Path, write_skill: Callable[..., Path]
    ) -> None:
        source = SkillSource([scenario_skills_dir])
        engine = ActivationEngine(source=source)
        await engine.reload()
        assert len(engine.registry) == 3

        write_skill(scenario_skills_dir, "d-new", "New.", id="D")
        await engine.reload()
        assert len(engine.registry) == 4
        assert engine.registry.version == 2

    @pytest.mark.asyncio
    async def test_malformed_reload_keeps_previous(
        self, engine: ActivationEngine
    ) -> None:
        before = engine.registry

        with pytest.raises(ReloadSourceError, match="No valid skills"):
            await engine.reload(lambda: [{"id": "bad"}, {"body": "no id"}])

        assert engine.registry is before
        assert engine.activate(scenario_request()).skill_ids == ["C", "B"]

    @pytest.mark.asyncio
    async def test_partial_issues_accepted_by_default(
        self, engine: ActivationEngine, scenario_records: list[dict[str, Any]]
    ) -> None:
        registry = await engine.reload(lambda: scenario_records + [{"id": "bad"}])
        assert len(registry) == 3
        assert len(registry.issues) == 1

    @pytest.mark.asyncio
    async def test_reject_on_issues(
        self, scenario_registry: SkillRegistry, scenario_records: list[dict[str, Any]]
    ) -> None:
        engine = ActivationEngine(scenario_registry, reject_on_issues=True)
        with pytest.raises(ReloadSourceError):
            await engine.reload(lambda: scenario_records + [{"id": "bad"}])
        assert engine.registry is scenario_registry

    @pytest.mark.asyncio
    async def test_source_exception_wrapped(self, engine: ActivationEngine) -> None:
        def broken() -> list[dict[str, Any]]:
            raise OSError("disk gone")

        with pytest.raises(ReloadSourceError, match="disk gone"):
            await engine.reload(broken)
        assert engine.registry.version == 1

    @pytest.mark.asyncio
    async def test_timeout_keeps_previous(
        self, engine: ActivationEngine, scenario_records: list[dict[str, Any]]
    ) -> None:
        def slow() -> list[dict[str, Any]]:
            time.sleep(0.5)
            return scenario_records

        with pytest.raises(ReloadTimeout):
            await engine.reload(slow, timeout=0.05)
        assert engine.registry.version == 1

    @pytest.mark.asyncio
    async def test_no_source(self) -> None:
        with pytest.raises(ReloadSourceError, match="No skill source"):
            await ActivationEngine().reload()

    @pytest.mark.asyncio
    async def test_failed_source_not_adopted(
        self, scenario_skills_dir: Path
    ) -> None:
        good = SkillSource([scenario_skills_dir])
        engine = ActivationEngine(source=good)
        await engine.reload()

        with pytest.raises(ReloadSourceError):
            await engine.reload(SkillSource([scenario_skills_dir / "missing"]))
        assert engine.source is good

    @pytest.mark.asyncio
    async def test_in_flight_request_keeps_its_snapshot(
        self, scenario_records: list[dict[str, Any]]
    ) -> None:
        started = threading.Event()
        release = threading.Event()

        class BlockingEngine(ActivationEngine):
            def _signal(self, registry, request):
                started.set()
                release.wait(timeout=5)
                return super()._signal(registry, request)

        engine = BlockingEngine(load(scenario_records))
        request_task = asyncio.create_task(
            asyncio.to_thread(engine.activate, scenario_request())
        )
        await asyncio.to_thread(started.wait, 5)

        await engine.reload(lambda: [{"id": "Z", "keywords": ["fiori"], "body": "Z."}])
        release.set()
        response = await request_task

        assert response.registry_version == 1
        assert response.skill_ids == ["C", "B"]
        assert engine.activate(scenario_request()).skill_ids == ["Z"]

    @pytest.mark.asyncio
    async def test_on_reload_callbacks(
        self, engine: ActivationEngine, scenario_records: list[dict[str, Any]]
    ) -> None:
        seen: list[int] = []
        unregister = engine.on_reload(lambda registry: seen.append(registry.version))

        await engine.reload(lambda: scenario_records)
        unregister()
        await engine.reload(lambda: scenario_records)

        assert seen == [2]
        assert engine.registry.version == 3

    @pytest.mark.asyncio
    async def test_callback_error_does_not_fail_reload(
        self, engine: ActivationEngine, scenario_records: list[dict[str, Any]]
    ) -> None:
        def explode(registry: SkillRegistry) -> None:
            raise RuntimeError("boom")

        engine.on_reload(explode)
        registry = await engine.reload(lambda: scenario_records)
        assert engine.registry is registry
