"""Workspace signal: the per-request input to skill matching.

The host (IDE, CLI, agent) is responsible for observing the workspace; it
hands a fresh WorkspaceSignal to the engine on every request. The helpers
here cover the common cases of reading manifest dependencies and picking
explicit skill mentions out of a prompt.
"""

from __future__ import annotations

import json
import re
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from skillactivation.logging import get_logger

log = get_logger("signal")

# #skill-id or @skill-id, not preceded by a word character (skips emails)
_REF_PATTERN = re.compile(r"(?<![\w@#])[#@]([A-Za-z0-9][\w.-]*[\w]|[A-Za-z0-9])")

# Leading distribution name of a PEP 508 requirement line
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")

_PACKAGE_JSON_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


@dataclass(frozen=True)
class WorkspaceSignal:
    """Observable workspace state for one activation request.

    Attributes:
        active_files: File paths, most recently touched first.
        manifest_tokens: Dependency identifiers from project manifests.
        prompt_text: Free text of the user's prompt (may be empty).
        explicit_skill_refs: Skill ids or names the user asked for by name.
    """

    active_files: tuple[str, ...] = ()
    manifest_tokens: frozenset[str] = frozenset()
    prompt_text: str = ""
    explicit_skill_refs: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        active_files: Iterable[str] = (),
        manifest_tokens: Iterable[str] = (),
        prompt_text: str = "",
        explicit_skill_refs: Iterable[str] = (),
    ) -> WorkspaceSignal:
        """Build a signal from plain iterables, normalising manifest tokens."""
        return cls(
            active_files=tuple(active_files),
            manifest_tokens=frozenset(t.strip().lower() for t in manifest_tokens if t.strip()),
            prompt_text=prompt_text or "",
            explicit_skill_refs=tuple(r for r in explicit_skill_refs if r.strip()),
        )


@runtime_checkable
class SignalCollector(Protocol):
    """Supplies the current workspace signal. Implemented by the host."""

    def collect(self) -> WorkspaceSignal: ...


def scan_explicit_refs(prompt_text: str) -> list[str]:
    """Find ``#name`` and ``@name`` mentions in a prompt, in order, without repeats."""
    seen: set[str] = set()
    refs: list[str] = []
    for match in _REF_PATTERN.finditer(prompt_text or ""):
        ref = match.group(1)
        if ref.lower() not in seen:
            seen.add(ref.lower())
            refs.append(ref)
    return refs


def _package_json_tokens(path: Path) -> set[str]:
    data = json.loads(path.read_text(encoding="utf-8"))
    tokens: set[str] = set()
    if not isinstance(data, dict):
        return tokens
    for section in _PACKAGE_JSON_SECTIONS:
        deps = data.get(section)
        if isinstance(deps, dict):
            tokens.update(str(name) for name in deps)
    return tokens


def _requirement_names(lines: Iterable[str]) -> set[str]:
    tokens: set[str] = set()
    for line in lines:
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = _REQUIREMENT_NAME.match(line)
        if match:
            tokens.add(match.group(1))
    return tokens


def _pyproject_tokens(path: Path) -> set[str]:
    with open(path, "rb") as f:
        data = tomllib.load(f)
    project = data.get("project", {})
    lines = list(project.get("dependencies", []))
    for extra in project.get("optional-dependencies", {}).values():
        lines.extend(extra)
    return _requirement_names(lines)


def read_manifest_tokens(paths: Iterable[str | Path]) -> frozenset[str]:
    """Extract lower-cased dependency names from project manifests.

    Understands package.json, requirements*.txt and pyproject.toml.
    Unreadable or unknown manifests are logged and skipped.
    """
    tokens: set[str] = set()
    for raw in paths:
        path = Path(raw)
        name = path.name.lower()
        try:
            if name == "package.json":
                tokens |= _package_json_tokens(path)
            elif name == "pyproject.toml":
                tokens |= _pyproject_tokens(path)
            elif name.startswith("requirements") and name.endswith(".txt"):
                tokens |= _requirement_names(path.read_text(encoding="utf-8").splitlines())
            else:
                log.debug("Unknown manifest type, skipping: %s", path)
        except (OSError, ValueError) as e:
            log.warning("Could not read manifest %s: %s", path, e)
    return frozenset(t.lower() for t in tokens)
