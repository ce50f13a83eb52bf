"""Request/response models for the activation interface.

Field names are snake_case in Python and camelCase on the wire; either
spelling is accepted when validating.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base model with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)


class ActivationRequest(WireModel):
    """Workspace state and caller overrides for one activation."""

    active_files: list[str] = Field(default_factory=list, alias="activeFiles")
    manifest_tokens: list[str] = Field(default_factory=list, alias="manifestTokens")
    prompt_text: str = Field(default="", alias="promptText")
    explicit_skill_refs: list[str] = Field(default_factory=list, alias="explicitSkillRefs")
    explicit_exclusions: list[str] = Field(default_factory=list, alias="explicitExclusions")
    budget: int | None = Field(default=None, ge=0)


class DiagnosticEntry(WireModel):
    """Why a skill was (or was not) part of the response."""

    skill_id: str = Field(alias="skillId")
    reasons: list[str] = Field(default_factory=list)


class MatchReport(WireModel):
    """One skill's score, for "why didn't skill X activate" questions."""

    skill_id: str = Field(alias="skillId")
    score: float
    reasons: list[str] = Field(default_factory=list)
    explicit: bool = False


class ActivationResponse(WireModel):
    """Selected skills and the composed context document."""

    skill_ids: list[str] = Field(default_factory=list, alias="skillIds")
    document: str = ""
    truncated: bool = False
    diagnostics: list[DiagnosticEntry] = Field(default_factory=list)
    omitted_skill_ids: list[str] = Field(default_factory=list, alias="omittedSkillIds")
    registry_version: int = Field(default=0, alias="registryVersion")
