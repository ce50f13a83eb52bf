"""Configuration management for the skill activation engine.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/skillactivation/ or %PROGRAMDATA%)
- User-level config (~/.config/skillactivation/, ~/.sa/ or %APPDATA%)
- Project-level config ($project_root/.sa/)
- Environment variable overrides (highest priority)

Example usage:
    from skillactivation.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.composer.budget)
    print(config.matching.pattern_weight)
"""

from skillactivation.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from skillactivation.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from skillactivation.config.schema import (
    ComposerConfig,
    Config,
    LoggingConfig,
    MatchingConfig,
    ReloadConfig,
    SkillsConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    # Schema types
    "SkillsConfig",
    "MatchingConfig",
    "ComposerConfig",
    "ReloadConfig",
    "LoggingConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
