"""Skill source watcher for automatic reload on changes.

Polls the modification times of every file a SkillSource reads (SKILL.md
files and descriptor files) and reloads the engine when any of them is
created, modified or deleted. Polling keeps this portable without extra
dependencies.
"""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path

from skillactivation.config.schema import Config
from skillactivation.engine import ActivationEngine
from skillactivation.errors import ReloadError
from skillactivation.logging import get_logger
from skillactivation.skills.loader import SkillSource

log = get_logger("watcher")

DEFAULT_POLL_INTERVAL = 2.0


class SkillWatcher:
    """Watches a skill source and reloads an engine when it changes.

    Example:
        async with SkillWatcher(engine, source, poll_interval=1.0):
            ...  # engine picks up edited skills while this block runs
    """

    def __init__(
        self,
        engine: ActivationEngine,
        source: SkillSource,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._engine = engine
        self._source = source
        self._poll_interval = max(0.05, poll_interval)
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._mtimes: dict[Path, float] = {}
        self.reload_count = 0
        self.failure_count = 0

    @classmethod
    def from_engine(cls, engine: ActivationEngine, config: Config) -> SkillWatcher:
        """Watch the engine's own source at ``config.reload.poll_interval``.

        Raises:
            ValueError: If the engine has no file-based source.
        """
        source = engine.source
        if not isinstance(source, SkillSource):
            raise ValueError("Engine has no file-based skill source to watch")
        return cls(engine, source, poll_interval=config.reload.poll_interval)

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def running(self) -> bool:
        return self._running

    def _check_mtimes(self) -> dict[Path, float]:
        """Get current modification times for all source files."""
        mtimes: dict[Path, float] = {}
        for path in self._source.files():
            with contextlib.suppress(OSError):
                mtimes[path] = path.stat().st_mtime
        return mtimes

    def detect_changes(self) -> list[Path]:
        """Paths created, modified or deleted since the last check."""
        current = self._check_mtimes()
        changed = [
            path
            for path, old_mtime in self._mtimes.items()
            if current.get(path) != old_mtime
        ]
        changed.extend(path for path in current if path not in self._mtimes)
        self._mtimes = current
        return changed

    async def poll_once(self) -> bool:
        """Check for changes and reload if needed. Returns True if a reload succeeded."""
        changed = self.detect_changes()
        if not changed:
            return False

        log.info("Skill sources changed: %s", [str(p) for p in changed])
        try:
            await self._engine.reload(self._source)
        except ReloadError as e:
            self.failure_count += 1
            log.error("Reload after change failed: %s", e)
            return False
        self.reload_count += 1
        return True

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._poll_interval)
            if not self._running:
                break
            await self.poll_once()

    def start(self) -> None:
        """Start watching. Must be called from within a running event loop."""
        if self._running:
            return
        self._mtimes = self._check_mtimes()
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        log.debug("Skill watcher started (interval=%.2fs)", self._poll_interval)

    def stop(self) -> None:
        """Stop watching."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        log.debug("Skill watcher stopped")

    async def __aenter__(self) -> SkillWatcher:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.stop()
