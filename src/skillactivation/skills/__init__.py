"""Skill descriptors, their sources, and the registry snapshot.

Example usage:
    from skillactivation.skills import SkillSource, load

    snapshot = SkillSource([".kiro/skills"]).read()
    registry = load(snapshot.records, source_issues=snapshot.issues)
    for skill in registry.all():
        print(f"{skill.id}: {skill.description}")
    for issue in registry.issues:
        print(f"skipped: {issue}")
"""

from skillactivation.skills.loader import (
    SkillSource,
    SourceSnapshot,
    discover_skill_files,
    read_descriptor_file,
    record_from_skill_file,
)
from skillactivation.skills.patterns import (
    FilePattern,
    GlobSyntaxError,
    compile_glob,
    conflict_key,
    normalize_path,
    validate_glob,
)
from skillactivation.skills.registry import SkillRegistry, load
from skillactivation.skills.schema import (
    SkillCategory,
    SkillDescriptor,
    descriptor_from_record,
)

__all__ = [
    # Schema
    "SkillCategory",
    "SkillDescriptor",
    "descriptor_from_record",
    # Patterns
    "FilePattern",
    "GlobSyntaxError",
    "compile_glob",
    "conflict_key",
    "normalize_path",
    "validate_glob",
    # Registry
    "SkillRegistry",
    "load",
    # Sources
    "SkillSource",
    "SourceSnapshot",
    "discover_skill_files",
    "read_descriptor_file",
    "record_from_skill_file",
]
