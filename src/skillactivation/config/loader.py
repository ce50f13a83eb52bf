"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from skillactivation.config.merge import merge_configs
from skillactivation.config.paths import get_config_paths
from skillactivation.config.schema import (
    ComposerConfig,
    Config,
    LoggingConfig,
    MatchingConfig,
    ReloadConfig,
    SkillsConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("skillactivation.config")

_cached_config: Config | None = None

_SIZE_METRICS = ("chars", "tokens")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    SA_LOG sets the log file, SA_BUDGET the composer budget and
    SA_SKILLS_PATH (os.pathsep separated) the skill paths.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("SA_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    budget = os.environ.get("SA_BUDGET")
    if budget:
        try:
            overrides.setdefault("composer", {})["budget"] = int(budget)
        except ValueError:
            _log.warning("Ignoring non-integer SA_BUDGET: %r", budget)

    skills_path = os.environ.get("SA_SKILLS_PATH")
    if skills_path:
        paths = [p for p in skills_path.split(os.pathsep) if p]
        overrides.setdefault("skills", {})["paths"] = paths

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        _log.warning("Config section '%s' must be a mapping, ignoring", name)
        return {}
    return value


def _float(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        _log.warning("Config value '%s' must be a number, using %s", key, default)
        return default


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass."""
    skills_data = _section(data, "skills")
    raw_paths = skills_data.get("paths", [])
    if isinstance(raw_paths, str):
        raw_paths = [raw_paths]
    skills = SkillsConfig(paths=[str(p) for p in raw_paths if p])

    match_data = _section(data, "matching")
    defaults = MatchingConfig()
    matching = MatchingConfig(
        pattern_weight=_float(match_data, "pattern_weight", defaults.pattern_weight),
        keyword_weight=_float(match_data, "keyword_weight", defaults.keyword_weight),
        dependency_weight=_float(
            match_data, "dependency_weight", defaults.dependency_weight
        ),
        recency_step=_float(match_data, "recency_step", defaults.recency_step),
        recency_floor=_float(match_data, "recency_floor", defaults.recency_floor),
        scan_prompt_refs=bool(match_data.get("scan_prompt_refs", True)),
    )

    composer_data = _section(data, "composer")
    size_metric = str(composer_data.get("size_metric", "chars")).lower()
    if size_metric not in _SIZE_METRICS:
        _log.warning("Unknown size_metric '%s', using chars", size_metric)
        size_metric = "chars"
    composer = ComposerConfig(
        budget=int(_float(composer_data, "budget", ComposerConfig.budget)),
        size_metric=size_metric,
    )

    reload_data = _section(data, "reload")
    reload = ReloadConfig(
        timeout=_float(reload_data, "timeout", ReloadConfig.timeout),
        poll_interval=_float(reload_data, "poll_interval", ReloadConfig.poll_interval),
        reject_on_issues=bool(reload_data.get("reject_on_issues", False)),
    )

    log_data = _section(data, "logging")
    verbose = log_data.get("verbose")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=int(verbose) if verbose is not None else None,
        file=log_data.get("file"),
    )

    known_keys = {"skills", "matching", "composer", "reload", "logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(
        skills=skills,
        matching=matching,
        composer=composer,
        reload=reload,
        logging=logging_config,
        extra=extra,
    )


def load_config(
    project_root: str | Path | None = None,
    reload: bool = False,
    config_file: str | Path | None = None,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit config_file (e.g. from --config)
    3. Project config ($project_root/.sa/config.yaml)
    4. User config
    5. System config

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.
        config_file: Extra config file layered over the discovered ones.

    Returns:
        Merged Config object.
    """
    global _cached_config

    is_global = project_root is None and config_file is None
    if _cached_config is not None and not reload and is_global:
        return _cached_config

    paths = get_config_paths(project_root)
    if config_file:
        paths.append(Path(config_file))

    layers: list[dict[str, Any]] = []
    for path in paths:
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            layers.append(layer)

    env_layer = env_overrides()
    if env_layer:
        layers.append(env_layer)

    config = dict_to_config(merge_configs(*layers))

    if is_global:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config. Useful for testing or forcing a reload."""
    global _cached_config
    _cached_config = None
